"""
Exit Codes - Process exit statuses for the tracktree CLI.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes returned by main()."""

    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    CONNECTION_ERROR = 3  # Transport failures and rejected credentials
    SIGINT = 130  # 128 + SIGINT
