"""Domain enums — pure Python, no external dependencies."""

from enum import Enum

# Rule criterion value that matches any case attribute
WILDCARD = "ALL"


class AssignmentStrategy(str, Enum):
    ROUND_ROBIN = "ROUND_ROBIN"
    LEAST_LOADED = "LEAST_LOADED"
    SPECIALIZED = "SPECIALIZED"
    RANDOM = "RANDOM"


class AssignmentMethod(str, Enum):
    AUTO = "AUTO"
    MANUAL = "MANUAL"
    RULE_BASED = "RULE_BASED"


class AssignmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REASSIGNED = "REASSIGNED"


class CasePriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"
