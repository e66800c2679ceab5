"""Temporary AWS credentials returned by STS.

Credentials live in memory for a single invocation only; nothing here is ever
written to disk.
"""

import json
from dataclasses import dataclass
from typing import Any

from awx.errors import ExternalServiceError

ACCESS_KEY_ENV = "AWS_ACCESS_KEY_ID"
SECRET_KEY_ENV = "AWS_SECRET_ACCESS_KEY"
SESSION_TOKEN_ENV = "AWS_SESSION_TOKEN"


@dataclass(frozen=True)
class Credential:
    """STS credential set.

    Attributes:
        access_key_id: Temporary access key id
        secret_access_key: Temporary secret key
        session_token: Session token
        expiration: Expiration timestamp as reported by STS (not parsed)
    """

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: str | None = None

    def __repr__(self) -> str:
        return (
            f"Credential(access_key_id={self.access_key_id!r}, "
            f"secret_access_key='****', session_token='****', "
            f"expiration={self.expiration!r})"
        )

    def as_env(self) -> dict[str, str]:
        """Environment variables that make the aws CLI use these credentials."""
        return {
            ACCESS_KEY_ENV: self.access_key_id,
            SECRET_KEY_ENV: self.secret_access_key,
            SESSION_TOKEN_ENV: self.session_token,
        }

    @classmethod
    def from_sts_response(cls, payload: str, operation: str) -> "Credential":
        """Parse the JSON output of get-session-token or assume-role.

        Args:
            payload: stdout of the aws CLI call
            operation: Operation name used in error messages

        Raises:
            ExternalServiceError: If the output is not JSON or lacks credentials
        """
        try:
            data: Any = json.loads(payload)
            creds = data["Credentials"]
            return cls(
                access_key_id=creds["AccessKeyId"],
                secret_access_key=creds["SecretAccessKey"],
                session_token=creds["SessionToken"],
                expiration=creds.get("Expiration"),
            )
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Parsing {operation} JSON response failed") from e
        except (KeyError, TypeError, AttributeError) as e:
            raise ExternalServiceError(
                f"Parsing {operation} JSON response failed: missing {e}"
            ) from e


__all__ = [
    "ACCESS_KEY_ENV",
    "SECRET_KEY_ENV",
    "SESSION_TOKEN_ENV",
    "Credential",
]
