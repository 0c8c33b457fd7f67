"""Credential providers for the sink.

Resolution precedence, highest first:

1. an explicit credential object
2. an explicit credential-file path
3. the default credential file, if it exists
4. an explicit user and password
5. the ambient environment (INFLUX_USERNAME, INFLUX_PASSWORD)
6. plaintext configuration values, only when explicitly allowed
"""

import logging
import os
import stat
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ValidationError

from perfpipe.core.exceptions import CredentialError
from perfpipe.core.models import Credentials
from perfpipe.core.ports import CredentialProvider

logger = logging.getLogger(__name__)

USER_ENV = "INFLUX_USERNAME"
PASSWORD_ENV = "INFLUX_PASSWORD"


def file_credentials_supported() -> bool:
    """True if this runtime can verify that a credential file is private."""
    return os.name == "posix"


class _CredentialFile(BaseModel):
    user: str
    password: str


class InlineCredentialProvider:
    """Credentials held in memory."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def resolve(self) -> Credentials:
        return self._credentials


class FileCredentialProvider:
    """Credentials read from a JSON file with ``user`` and ``password`` keys.

    The file must not be readable by group or others. Runtimes that cannot
    check file permissions are refused when the provider is constructed.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        if not file_credentials_supported():
            raise CredentialError(
                "File-backed credentials are not supported on this platform"
            )
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def resolve(self) -> Credentials:
        try:
            mode = self._path.stat().st_mode
            if mode & (stat.S_IRWXG | stat.S_IRWXO):
                raise CredentialError(
                    f"Credential file {self._path} must only be accessible by its owner"
                )
            parsed = _CredentialFile.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except OSError as exc:
            raise CredentialError(
                f"Cannot read credential file {self._path}: {exc}"
            ) from exc
        except ValidationError as exc:
            raise CredentialError(f"Malformed credential file {self._path}") from exc
        return Credentials(user=parsed.user, password=parsed.password)


class AmbientCredentialProvider:
    """Credentials passed through from the environment the influx CLI reads."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        user_var: str = USER_ENV,
        password_var: str = PASSWORD_ENV,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._user_var = user_var
        self._password_var = password_var

    def available(self) -> bool:
        return bool(self._environ.get(self._user_var))

    def resolve(self) -> Credentials:
        user = self._environ.get(self._user_var)
        if not user:
            raise CredentialError(f"{self._user_var} is not set")
        password = self._environ.get(self._password_var, "")
        return Credentials(user=user, password=password)


def resolve_credential_provider(
    credential: Credentials | CredentialProvider | None = None,
    credential_file: str | os.PathLike[str] | None = None,
    default_credential_file: str | os.PathLike[str] | None = None,
    user: str | None = None,
    password: str | None = None,
    plaintext: Credentials | None = None,
    allow_plaintext: bool = False,
    environ: Mapping[str, str] | None = None,
) -> CredentialProvider:
    """Pick the credential provider according to the documented precedence.

    Raises:
        CredentialError: If no source yields credentials.
    """
    if isinstance(credential, Credentials):
        return InlineCredentialProvider(credential)
    if credential is not None:
        return credential
    if credential_file:
        return FileCredentialProvider(credential_file)
    if default_credential_file and file_credentials_supported():
        default = Path(default_credential_file).expanduser()
        if default.is_file():
            logger.debug("Using default credential file %s", default)
            return FileCredentialProvider(default)
    if user:
        return InlineCredentialProvider(Credentials(user=user, password=password or ""))
    ambient = AmbientCredentialProvider(environ)
    if ambient.available():
        return ambient
    if plaintext is not None:
        if allow_plaintext:
            logger.warning("Using plaintext sink credentials from configuration")
            return InlineCredentialProvider(plaintext)
        raise CredentialError(
            "Plaintext credentials are configured but not allowed; "
            "set allow_plaintext_credentials to use them"
        )
    raise CredentialError("No sink credentials available")
