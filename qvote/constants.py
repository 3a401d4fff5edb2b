"""
qvote Constants

This module consolidates the protocol constants and the environment
configuration used throughout the governance core. Constants are organized
by category for easy reference and maintenance.
"""
import ast
import re
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

GOVERNANCE_DEFAULTS = {
    'QVOTE_VOTING_PERIOD':             '100',
    'QVOTE_CONFIG':                    'qvote.toml',
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


# WARNING: THE VALUES BELOW ARE PART OF THE GOVERNANCE PROTOCOL. CHANGING THEM CHANGES THE OUTCOME
# OF EVERY REGISTRATION, VOTE AND UNRESERVE, AND MAKES STATE ROOTS INCOMPARABLE WITH OTHER NODES.

# ==================================================================================
# BALANCE AND INDEX BOUNDS
# ==================================================================================
BALANCE_MAX = 2 ** 128 - 1  # Balances and vote weights are unsigned 128-bit
PROPOSAL_INDEX_MAX = 2 ** 32 - 1  # Proposal indices are unsigned 32-bit
TEXT_HASH_SIZE = 32  # blake2b-256 digest


# ==================================================================================
# ECONOMICS
# ==================================================================================
ONBOARDING_ENDOWMENT = 100  # Units granted to every newly registered voter, minus the fee
UNRESERVE_PENALTY_DIVISOR = 2  # floor(amount / 2) is burned on every unreserve
DEFAULT_VOTING_PERIOD = 100  # Blocks between proposal creation and its deadline


# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# Regex pattern for validating hexadecimal text hashes (optional 0x prefix)
VALID_TEXT_HASH_PATTERN = re.compile(r'^(0x)?[0-9a-fA-F]{64}$')


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

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = GOVERNANCE_DEFAULTS | LOGGER_DEFAULTS
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
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    # Parses only boolean-literals. Leaves other values untouched.
    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
