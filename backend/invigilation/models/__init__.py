from invigilation.models.activity_log import ActivityLog  # noqa: F401
from invigilation.models.allocation import (  # noqa: F401
    ACTIVE_ALLOCATION_STATUSES,
    AcknowledgmentStatus,
    Allocation,
    AllocationStatus,
    LiveStatus,
    ReserveStatus,
)
from invigilation.models.allocation_policy import AllocationPolicyRecord  # noqa: F401
from invigilation.models.classroom import Classroom  # noqa: F401
from invigilation.models.conflict import (  # noqa: F401
    Conflict,
    ConflictSeverity,
    ConflictStatus,
    ConflictType,
)
from invigilation.models.exam import Exam, ExamStatus, ExamType  # noqa: F401
from invigilation.models.reserved_allocation import (  # noqa: F401
    ReservedAllocation,
    ReservedAllocationStatus,
)
from invigilation.models.user import User, UserRole  # noqa: F401
