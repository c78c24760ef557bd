"""
Exception hierarchy for godspeed-cli

Every failure the CLI can report maps to one class here, and each fatal
class carries the process exit code it ends the run with.
"""


class GodspeedCliError(Exception):
    """Base class for all godspeed-cli failures"""
    exit_code = 1


class ConfigError(GodspeedCliError):
    """Missing credential or unusable configuration file"""
    exit_code = 3


class ParseError(GodspeedCliError):
    """Input text could not be turned into a Task"""


class MultipleListsError(ParseError):
    """More than one @list token in the input"""
    exit_code = 4

    def __init__(self, names):
        self.names = list(names)
        super().__init__(
            "Multiple lists specified: " + ", ".join(f"@{name}" for name in self.names)
        )


class EmptyTitleError(ParseError):
    """Nothing left for the title once shorthand tokens are removed"""
    exit_code = 6

    def __init__(self):
        super().__init__("Task title is empty")


class ResolveError(GodspeedCliError):
    """A name could not be mapped to a Godspeed identifier"""


class ListNotFoundError(ResolveError):
    exit_code = 5

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"List not found: {name}")


class DeliveryError(GodspeedCliError):
    """
    The Godspeed API did not accept a request

    Attributes:
        transient: True for connection errors, timeouts and 5xx responses,
            False for 4xx responses and unusable payloads
        status_code: HTTP status when a response was received
    """

    def __init__(self, message: str, transient: bool = True, status_code=None):
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code


class CacheIOError(GodspeedCliError):
    """The offline cache could not be read or durably written"""
    exit_code = 7
