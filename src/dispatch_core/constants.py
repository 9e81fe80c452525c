from enum import Enum

# reserved key of usage and timers records
DATE_MARKER = "$date"

BEFORE_COMMAND_EVENT = "before-command"
COMMAND_ADDED_EVENT = "command-added"
COMMAND_REMOVED_EVENT = "command-removed"


class PolicyField(str, Enum):
    """User record fields read by the policy middleware."""

    AUTHORITY = "authority"
    USAGE = "usage"
    TIMERS = "timers"


class MessageKey(str, Enum):
    """Template keys of the policy veto messages."""

    LOW_AUTHORITY = "internal.low-authority"
    USAGE_EXHAUSTED = "internal.usage-exhausted"
    TOO_FREQUENT = "internal.too-frequent"
    INSUFFICIENT_ARGUMENTS = "internal.insufficient-arguments"
    REDUNDANT_ARGUMENTS = "internal.redundant-arguments"
    UNKNOWN_OPTION = "internal.unknown-option"
