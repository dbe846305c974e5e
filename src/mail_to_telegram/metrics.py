"""Prometheus metrics definitions for the gateway."""

from prometheus_client import Counter, Gauge, Histogram

# Counter metrics
smtp_connections_total = Counter(
    "smtp_connections_total",
    "Total number of SMTP connections",
    ["status"],  # closed, failed
)

smtp_commands_total = Counter(
    "smtp_commands_total",
    "Total number of SMTP commands processed",
    ["command", "status"],  # command: HELO, MAIL, RCPT, DATA, etc.
)

smtp_envelopes_received_total = Counter(
    "smtp_envelopes_received_total",
    "Total number of completed DATA transactions",
    ["status"],  # queued, dropped_undecodable, rejected
)

relay_deliveries_total = Counter(
    "relay_deliveries_total",
    "Total number of delivery attempts to Telegram",
    ["method", "status"],  # method: text, document; status: success, failed
)

relay_unresolved_recipients_total = Counter(
    "relay_unresolved_recipients_total",
    "Total number of recipients skipped because no chat id could be resolved",
)

# Histogram metrics
smtp_connection_duration_seconds = Histogram(
    "smtp_connection_duration_seconds",
    "SMTP connection duration in seconds",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)

smtp_message_size_bytes = Histogram(
    "smtp_message_size_bytes",
    "Email message size in bytes",
    buckets=(1024, 4096, 10240, 102400, 1048576, 10485760, 26214400),
)

telegram_api_latency_seconds = Histogram(
    "telegram_api_latency_seconds",
    "Telegram Bot API request latency in seconds",
    ["method", "status"],  # method: getMe, sendMessage, sendDocument
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

# Gauge metrics
smtp_active_connections = Gauge(
    "smtp_active_connections",
    "Current number of active SMTP connections",
)

relay_queue_depth = Gauge(
    "relay_queue_depth",
    "Current number of envelopes waiting for the relay worker",
)
