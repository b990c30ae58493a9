from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import (
    ERR_ARTIFACT,
    ERR_AUTH,
    ERR_BUILD,
    ERR_PROVISION,
    ERR_SOURCE,
    ERR_TRANSPORT,
)


@dataclass
class ScriptError(Exception):
    message: str
    code: int
    kind: str = "generic_error"
    stage: str = "internal"

    def __str__(self) -> str:
        return self.message


class ProvisionFailure(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_PROVISION, "provision_failure", "provision")


class SourceFailure(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_SOURCE, "source_failure", "source")


class BuildFailure(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_BUILD, "build_failure", "build")


class EmptyArtifact(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_ARTIFACT, "empty_artifact", "publish")


class AuthFailure(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_AUTH, "auth_failure", "publish")


class TransportFailure(ScriptError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_TRANSPORT, "transport_failure", "publish")
