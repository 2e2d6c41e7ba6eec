import os
from typing import Optional

import keyring
import yaml

APP_VERSION = "1.0.0"

KEYRING_SERVICE = "workout-session-sync"
# Written to the file in place of a secret held by the keyring.
KEYRING_PLACEHOLDER = True


class YamlConfig:
    """Synchronizer settings in a YAML file.

    With ``ENCRYPT_SETTINGS=1`` (or ``encrypt=True``) the API token is kept
    in the OS keyring and the file only records that one is stored.
    """

    SENSITIVE_KEYS = ("api_token",)

    def __init__(
        self,
        path: str = "settings.yaml",
        *,
        encrypt: Optional[bool] = None,
        service: str = KEYRING_SERVICE,
    ) -> None:
        self.path = path
        if encrypt is None:
            encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.encrypt = encrypt
        self.service = service

    def _read_file(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping of settings")
        return data

    def load(self) -> dict:
        data = self._read_file()
        for key in self.SENSITIVE_KEYS:
            if key not in data:
                continue
            if self.encrypt:
                secret = keyring.get_password(self.service, key)
                if secret is None:
                    data.pop(key)
                else:
                    data[key] = secret
            elif data[key] is KEYRING_PLACEHOLDER:
                raise ValueError(
                    f"{key} is stored in the keyring; set ENCRYPT_SETTINGS=1 to read it"
                )
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS:
                if key not in out:
                    continue
                if out[key] is None:
                    self._forget(key)
                    out.pop(key)
                else:
                    keyring.set_password(self.service, key, str(out[key]))
                    out[key] = KEYRING_PLACEHOLDER
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)

    def _forget(self, key: str) -> None:
        if keyring.get_password(self.service, key) is not None:
            keyring.delete_password(self.service, key)
