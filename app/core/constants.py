MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_OPENING = "OPENING"
MOVEMENT_TRANSFER_IN = "TRANSFER_IN"
MOVEMENT_TRANSFER_OUT = "TRANSFER_OUT"
MOVEMENT_TYPES = (
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_OPENING,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
)

STOCK_IN_REASON = "stock_in"
OPENING_STOCK_REASON = "opening_stock"
TRANSFER_REASON = "transfer"
REDUCTION_REASONS = (
    "damaged",
    "expired",
    "theft",
    "correction",
    "return",
    "sample",
    "other",
)

TRANSFER_NO_PREFIX = "ST/"
TRANSFER_NO_WIDTH = 4
