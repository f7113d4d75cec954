# gw_accounts: persisted multi-account store with legacy single-account migration.
#
# Document layout (YAML):
#   active_account: work
#   accounts:
#     work:
#       label: Work
#       auth: {client_id, client_secret, access_token, refresh_token, token_expiry}
#
# Older files carried a single top-level `auth:` block (or the credential keys
# at the top level). Those are migrated to a "default" account on load unless
# the document already has one; the migrated account becomes the active one.

from __future__ import annotations

import contextlib
import copy
import datetime as dt
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from gw_errors import ConfigError, StorageError

logger = logging.getLogger('gw_console')

DEFAULT_ACCOUNT = "default"
DEFAULT_LABEL = "Default Account"
CREDENTIAL_KEYS = ("client_id", "client_secret", "access_token", "refresh_token")


def default_store_path() -> str:
    env = os.environ.get("GW_CONSOLE_ACCOUNTS")
    if env:
        return os.path.expanduser(env)
    return os.path.expanduser("~/.config/gw_console/accounts.yaml")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_timestamp(value) -> dt.datetime:
    """Parse a stored expiry into an aware UTC datetime; empty means 'now'."""
    if value is None or value == '':
        return _utcnow()
    if isinstance(value, dt.datetime):
        ts = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            ts = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ConfigError(f"Invalid token_expiry {value!r}") from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc)


# -----------------------------
# Models
# -----------------------------
@dataclass
class Credentials:
    client_id: str = ''
    client_secret: str = ''
    access_token: str = ''
    refresh_token: str = ''
    token_expiry: dt.datetime = field(default_factory=_utcnow)

    def is_complete(self) -> bool:
        return all(getattr(self, key) for key in CREDENTIAL_KEYS)

    @classmethod
    def from_dict(cls, raw: dict) -> "Credentials":
        if not isinstance(raw, dict):
            raise ConfigError("Credential block must be a mapping")
        return cls(
            client_id=str(raw.get('client_id') or ''),
            client_secret=str(raw.get('client_secret') or ''),
            access_token=str(raw.get('access_token') or ''),
            refresh_token=str(raw.get('refresh_token') or ''),
            token_expiry=parse_timestamp(raw.get('token_expiry')),
        )

    def to_dict(self) -> dict:
        return {
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'token_expiry': self.token_expiry.isoformat(),
        }


@dataclass
class Account:
    name: str
    label: str
    credentials: Credentials

    def to_dict(self) -> dict:
        return {'label': self.label, 'auth': self.credentials.to_dict()}


def _legacy_block(raw: dict) -> Optional[dict]:
    auth = raw.get('auth')
    if isinstance(auth, dict):
        return auth
    if any(key in raw for key in CREDENTIAL_KEYS):
        return {key: raw.get(key) for key in CREDENTIAL_KEYS + ('token_expiry',)}
    return None


# -----------------------------
# Store
# -----------------------------
class AccountStore:
    def __init__(self, path: str, active_account: str = '', accounts: Optional[Dict[str, Account]] = None):
        self.path = path
        self.active_account = active_account
        self.accounts: Dict[str, Account] = dict(accounts or {})

    @classmethod
    def load(cls, path: str) -> "AccountStore":
        """Read the store at `path`, migrating (and re-saving) a legacy document."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f)
        except FileNotFoundError as exc:
            raise ConfigError(f"Account store not found at {path}; run with --setup") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {path}: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
        store, migrated = cls.from_document(path, raw)
        if migrated:
            logger.info("Migrated legacy single-account store %s to '%s'", path, DEFAULT_ACCOUNT)
            try:
                store.save()
            except StorageError as exc:
                logger.warning("Migrated store kept in memory only: %s", exc)
        return store

    @classmethod
    def from_document(cls, path: str, raw: dict):
        """Build a store from a parsed document; returns (store, migrated)."""
        accounts: Dict[str, Account] = {}
        accounts_raw = raw.get('accounts')
        if accounts_raw is not None and not isinstance(accounts_raw, dict):
            raise ConfigError("'accounts' must be a mapping of name -> account")
        for name, entry in (accounts_raw or {}).items():
            if not isinstance(entry, dict):
                raise ConfigError(f"Account '{name}' must be a mapping")
            key = str(name)
            accounts[key] = Account(
                name=key,
                label=str(entry.get('label') or key),
                credentials=Credentials.from_dict(entry.get('auth') or {}),
            )
        migrated = False
        active = str(raw.get('active_account') or '')
        legacy = _legacy_block(raw)
        if legacy is not None and DEFAULT_ACCOUNT not in accounts:
            accounts[DEFAULT_ACCOUNT] = Account(DEFAULT_ACCOUNT, DEFAULT_LABEL, Credentials.from_dict(legacy))
            active = DEFAULT_ACCOUNT
            migrated = True
        if accounts and active not in accounts:
            active = next(iter(accounts))
        if not accounts:
            active = ''
        return cls(path, active, accounts), migrated

    def to_document(self) -> dict:
        return {
            'active_account': self.active_account,
            'accounts': {name: acct.to_dict() for name, acct in self.accounts.items()},
        }

    def save(self) -> None:
        """Write the store atomically (temp file + rename), mode 0600."""
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.accounts-', suffix='.tmp', dir=directory)
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self.to_document(), f, default_flow_style=False, sort_keys=False)
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def active(self) -> Optional[Account]:
        return self.accounts.get(self.active_account)

    def get(self, name: str) -> Optional[Account]:
        return self.accounts.get(name)

    def names(self) -> List[str]:
        return list(self.accounts.keys())

    def add(self, name: str, account: Account) -> None:
        account.name = name
        self.accounts[name] = account
        if self.active_account not in self.accounts:
            self.active_account = name

    def remove(self, name: str) -> bool:
        if name not in self.accounts:
            return False
        del self.accounts[name]
        if self.active_account == name:
            self.active_account = next(iter(self.accounts), '')
        return True

    def switch(self, name: str) -> bool:
        if name not in self.accounts:
            return False
        self.active_account = name
        return True

    def set_credentials(self, name: str, credentials: Credentials) -> bool:
        acct = self.accounts.get(name)
        if acct is None:
            return False
        acct.credentials = copy.deepcopy(credentials)
        return True

    def set_label(self, name: str, label: str) -> bool:
        acct = self.accounts.get(name)
        if acct is None:
            return False
        acct.label = label
        return True

    def validate_active(self) -> bool:
        acct = self.active()
        return acct is not None and acct.credentials.is_complete()

    def copy(self) -> "AccountStore":
        return copy.deepcopy(self)
