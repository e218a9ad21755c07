"""Environment-driven settings.

Values are read from the process environment (a ``.env`` file in the working
directory is loaded first via python-dotenv). Call ``get_settings()`` for a
fresh snapshot; nothing is cached.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Settings for notifications, profiling and URI opening.

    Attributes:
        title: Title bound to every notification record
        profile_root: Name of the synthetic root span of a new ProfileStack
        viewer: Command used to view existing files (empty = platform opener)
    """

    title: str = "hostutil"
    profile_root: str = "session"
    viewer: str = ""


def get_settings() -> Settings:
    return Settings(
        title=os.getenv("HOSTUTIL_TITLE", "hostutil"),
        profile_root=os.getenv("HOSTUTIL_PROFILE_ROOT", "session"),
        viewer=os.getenv("HOSTUTIL_VIEWER", ""),
    )
