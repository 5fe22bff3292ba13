"""
Resolved deployment environment

Snapshot of the environment name, container flag and host identity,
resolved once at startup and shared read-only by every stage.
"""

import socket
from typing import Mapping, Optional

from pydantic import BaseModel

from service_base.config.settings import Settings, is_running_in_container

DEVELOPMENT = "development"


class EnvironmentDescriptor(BaseModel):
    """Read-only environment snapshot"""

    name: str
    in_container: bool = False
    machine_name: str

    class Config:
        frozen = True

    @property
    def is_development(self) -> bool:
        """Local development: HTTPS redirection is suppressed"""
        return self.name.strip().lower() == DEVELOPMENT

    @classmethod
    def resolve(
        cls,
        settings: Settings,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "EnvironmentDescriptor":
        return cls(
            name=settings.app_env,
            in_container=is_running_in_container(environ),
            machine_name=socket.gethostname(),
        )
