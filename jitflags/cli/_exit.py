"""Process exit codes shared by all subcommands."""

OK = 0
VIOLATION = 1  # a resolution pass ended with a constraint violation
USER_ERR = 2  # bad arguments, unreadable or invalid settings

__all__ = ["OK", "VIOLATION", "USER_ERR"]
