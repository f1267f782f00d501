"""Internal constants shared across the library."""

MQTT_PORT = 8883
MQTT_USERNAME = "bblp"

REPORT_TOPIC = "device/{serial}/report"
REQUEST_TOPIC = "device/{serial}/request"

#: Top-level envelope field carrying the correlation sequence number.
#: Outbound commands set it; replies are expected to echo it unchanged.
SEQUENCE_FIELD = "sequenceNumber"

DEFAULT_COMMAND_TIMEOUT = 10.0

# ------------------------------------------------------------------
# Material feed (AMS)
# ------------------------------------------------------------------

#: Tray id reserved for the external spool holder (not fed by an AMS unit).
EXTERNAL_SPOOL_ID = 254

#: Trays per AMS unit; unit `n` tray `t` is global slot `n * 4 + t`.
TRAYS_PER_UNIT = 4

# Canonical-state keys that record message receipt rather than device status.
# They are merged like any other field but never show up in change patches.
BOOKKEEPING_KEYS: frozenset[str] = frozenset({"raw", "timestamp", "sequence_id", "command"})

# Opaque values that always hold the latest report, never a merge of past ones.
OPAQUE_KEYS: frozenset[str] = frozenset({"raw"})
