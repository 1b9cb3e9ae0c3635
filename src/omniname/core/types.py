"""Core enums and type definitions."""

from enum import IntEnum, StrEnum


class ProviderName(StrEnum):
    """Identifiers of the built-in naming authority adapters."""

    ENS = "ens"
    UNSTOPPABLE = "unstoppable"
    SPACE_ID = "spaceid"
    SNS = "sns"
    SUINS = "suins"
    CIFI = "cifi"

    # Synthetic source for raw addresses passed straight through
    ADDRESS = "address"


class AttemptOutcome(StrEnum):
    """Classification of a single provider invocation."""

    SUCCESS = "success"
    NO_RECORD = "no_record"
    ERROR = "error"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"  # Not dispatched because the batch was cancelled


class PatternKind(StrEnum):
    """How a route pattern is matched against a normalized name."""

    SUFFIX = "suffix"
    PREFIX = "prefix"


class CacheKind(StrEnum):
    """Namespaces held by the resolution cache."""

    FORWARD = "forward"
    REVERSE = "reverse"
    RECORDS = "records"


class CacheBackend(StrEnum):
    """Available cache backends."""

    MEMORY = "memory"
    REDIS = "redis"


class AddressKind(StrEnum):
    """Raw address formats recognised without provider I/O."""

    EVM = "evm"
    SUI = "sui"


class CoinType(IntEnum):
    """SLIP-0044 coin types used by multi-chain name records."""

    BTC = 0
    ETH = 60
    SOL = 501
    SUI = 784
    MATIC = 966
