# vault_match/errors.py
from __future__ import annotations


class VaultMatchError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(VaultMatchError, ValueError):
    pass


class BoardInvariantError(VaultMatchError, AssertionError):
    """Position/card bookkeeping went out of sync. Always a bug."""


class HintOracleError(VaultMatchError):
    """The hint oracle could not be reached or replied with garbage."""


class TrainingDataError(VaultMatchError):
    pass
