"""Carrot protocol constants.

Wire widths, domain separators and output-set bounds. These are fixed by the
protocol; changing any of them breaks compatibility with other wallets.
"""

from __future__ import annotations

SDK_VERSION = "0.1.0"

# =============================================================================
# Wire widths
# =============================================================================

VIEW_TAG_BYTES = 3
JANUS_ANCHOR_BYTES = 16
PAYMENT_ID_BYTES = 8
ENCRYPTED_AMOUNT_BYTES = 8
INPUT_CONTEXT_BYTES = 33
INPUT_CONTEXT_COINBASE_BYTES = 9
BLOCK_INDEX_BYTES = 8
KEY_BYTES = 32

NULL_PAYMENT_ID = bytes(PAYMENT_ID_BYTES)
NULL_JANUS_ANCHOR = bytes(JANUS_ANCHOR_BYTES)

# =============================================================================
# Output set bounds
# =============================================================================

CARROT_MIN_TX_OUTPUTS = 2
CARROT_MAX_TX_OUTPUTS = 8

# =============================================================================
# Domain separators
# =============================================================================

DOMAIN_SEP_INPUT_CONTEXT_RINGCT = b"R"
DOMAIN_SEP_INPUT_CONTEXT_COINBASE = b"C"

DOMAIN_SEP_EPHEMERAL_PRIVKEY = b"Carrot sending key normal"
DOMAIN_SEP_SENDER_RECEIVER_SECRET = b"Carrot sender-receiver secret"
DOMAIN_SEP_VIEW_TAG = b"Carrot view tag"
DOMAIN_SEP_AMOUNT_BLINDING_FACTOR = b"Carrot commitment mask"
DOMAIN_SEP_ONETIME_EXTENSION_G = b"Carrot key extension G"
DOMAIN_SEP_ONETIME_EXTENSION_T = b"Carrot key extension T"
DOMAIN_SEP_ENCRYPTION_MASK_AMOUNT = b"Carrot encryption mask a"
DOMAIN_SEP_ENCRYPTION_MASK_PAYMENT_ID = b"Carrot encryption mask pid"
DOMAIN_SEP_ENCRYPTION_MASK_ANCHOR = b"Carrot encryption mask anchor"
DOMAIN_SEP_JANUS_ANCHOR_SPECIAL = b"Carrot janus anchor special"

# account secrets
DOMAIN_SEP_PROVE_SPEND_KEY = b"Carrot prove-spend key"
DOMAIN_SEP_VIEW_BALANCE_SECRET = b"Carrot view-balance secret"
DOMAIN_SEP_GENERATE_IMAGE_KEY = b"Carrot generate-image key"
DOMAIN_SEP_INCOMING_VIEW_KEY = b"Carrot incoming view key"
DOMAIN_SEP_GENERATE_ADDRESS_SECRET = b"Carrot generate-address secret"

# addresses
DOMAIN_SEP_ADDRESS_INDEX_GEN = b"Carrot address index generator"
DOMAIN_SEP_SUBADDRESS_SCALAR = b"Carrot subaddress scalar"
