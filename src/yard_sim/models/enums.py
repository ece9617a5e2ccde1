"""Enumeration types for yard-sim"""

from enum import Enum


class NodeType(str, Enum):
    """Functional categories for topology nodes"""

    SWITCH = "switch"
    """Point where tracks diverge"""

    BAY = "bay"
    """Inspection bay or workshop line"""

    SIDING_SLOT = "siding-slot"
    """One of the paired a/b parking positions of a siding"""

    TRACK = "track"
    """Plain running track"""

    ENTRY = "entry"
    """Where arriving trains enter the yard"""

    EXIT = "exit"
    """Where departing trains leave the yard"""

    TEST = "test"
    """Test track"""

    SHUNTING = "shunting"
    """Shunting neck used for reversing moves"""


class TrainStatus(str, Enum):
    """Lifecycle state of a train in the yard"""

    ARRIVING = "arriving"
    """At the entry point, waiting to enter inspection"""

    QUEUED = "queued"
    """Holding at the entry point, all inspection bays occupied"""

    INSPECTION = "inspection"
    """Occupying an inspection bay"""

    MOVING = "moving"
    """Released from a bay or line, awaiting its next assignment"""

    PARKED = "parked"
    """Occupying a siding slot"""

    WORKSHOP = "workshop"
    """Occupying a workshop line under repair"""

    TEST = "test"
    """On the test track"""

    DEPARTED = "departed"
    """Left the yard through an exit point"""


class Orientation(str, Enum):
    """Direction a train is facing"""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class ResourceStatus(str, Enum):
    """Occupancy state of a bay, workshop line or siding slot"""

    FREE = "free"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"


class SlotPosition(str, Enum):
    """Position within a siding; b sits behind a"""

    A = "a"
    B = "b"


class BlockingRisk(str, Enum):
    """How likely a parked train obstructs future yard moves"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TargetType(str, Enum):
    """Kind of destination a recommendation points at"""

    SIDING = "siding"
    WORKSHOP = "workshop"
    TEST = "test"


class Severity(str, Enum):
    """Severity attached to every yard event"""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class EventType(str, Enum):
    """Types of events recorded in the yard event log"""

    # Train lifecycle
    TRAIN_CREATED = "train:created"
    TRAIN_MOVED = "train:moved"
    TRAIN_UPDATED = "train:updated"

    # Infrastructure
    SWITCH_CHANGED = "switch:changed"
    LOCK_ACQUIRED = "lock:acquired"
    LOCK_RELEASED = "lock:released"

    # Milestones
    INSPECTION_RESULT = "inspection:result"
    WORKSHOP_UPDATED = "workshop:updated"

    # Planning
    PLAN_PREVIEW = "plan:preview"
    PLAN_START = "plan:start"
    PLAN_STEP = "plan:step"
    PLAN_COMPLETE = "plan:complete"

    # System
    LOG_NEW = "log:new"
    ERROR = "error"


class CommandType(str, Enum):
    """Commands accepted by the dispatcher"""

    CREATE_TRAIN = "create_train"
    ASSIGN_TRAIN = "assign_train"
    REMOVE_TRAIN = "remove_train"
    PREVIEW_PLAN = "preview_plan"
    EXECUTE_PLAN = "execute_plan"
    PAUSE = "pause"
    RESUME = "resume"
    SPEED_CHANGE = "speed_change"
