"""
Domain constants used across services/routers.
"""

# Basis points are integers out of FEE_DENOMINATOR (10_000 = 100%)
FEE_DENOMINATOR = 10_000

# Default platform fee: 3.00%
PLATFORM_FEE_BPS = 300

# Creator-configurable custom fee bounds (0% - 50%, inclusive)
MIN_CUSTOM_FEE_BPS = 0
MAX_CUSTOM_FEE_BPS = 5_000

# Tip memo limit in UTF-8 bytes (matches the on-chain send_tip_with_memo check)
MEMO_MAX_LENGTH = 200

# Length limits for externally supplied identifiers
TIP_ID_MAX_LENGTH = 128
CONTENT_ID_MAX_LENGTH = 128
