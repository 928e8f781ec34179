"""
QRVault Constants

This module consolidates all global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

REGISTRY_DEFAULTS = {
    'QRVAULT_ADMIN':                   'admin',
    'QRVAULT_DATABASE_PATH':           'data/qrvault.db',
    'QRVAULT_CRYPTO_BACKEND':          'structural',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE SIZES BELOW ARE PART OF THE REGISTRY'S PUBLIC CONTRACT. CHANGING THEM
# INVALIDATES EVERY RECORD ALREADY STORED AND EVERY CLIENT BUILT AGAINST THE REGISTRY.

# ==================================================================================
# POST-QUANTUM PARAMETER SIZES (bytes)
# ==================================================================================
DILITHIUM_PUBLIC_KEY_SIZE = 1312
DILITHIUM_SIGNATURE_SIZE = 2420
SPHINCS_PUBLIC_KEY_SIZE = 32
SPHINCS_SIGNATURE_SIZE = 17088
KYBER_PUBLIC_KEY_SIZE = 800
KYBER_CIPHERTEXT_SIZE = 768
HASH_SIZE = 32

# Leading bytes inspected by the structural key validators
KEY_PREFIX_CHECK_SIZE = 8

# Bytes compared by the structural lattice signature check
SIGNATURE_CHECK_PREFIX_SIZE = 16


# ==================================================================================
# REGISTRY PARAMETERS
# ==================================================================================
MAX_THREAT_LEVEL = 10
HASH_ROUNDS = 4
NONCE_COUNTER_SIZE = 16  # uint128, big-endian
GENESIS_HEIGHT = 1
DEFAULT_BLOCK_TIME = 600  # seconds between simulated blocks

# Contract function names accepted by the transaction layer
FN_REGISTER_KEYS = 'register-quantum-keys'
FN_CREATE_SIGNATURE = 'create-quantum-signature'
FN_STORE_ENCRYPTED_DATA = 'store-encrypted-data'
FN_CREATE_MERKLE_ROOT = 'create-quantum-merkle-root'
FN_INITIALIZE_HASH_CHAIN = 'initialize-hash-chain'
FN_EXTEND_HASH_CHAIN = 'extend-hash-chain'
FN_UPDATE_THREAT_LEVEL = 'update-quantum-threat-level'
FN_DEACTIVATE_KEYS = 'deactivate-quantum-keys'


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = REGISTRY_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
