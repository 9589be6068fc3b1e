"""Constants for memory/session management."""

# Message roles
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"

# Storage backend types
STORAGE_LOCAL = "local"
STORAGE_S3 = "s3"
STORAGE_DYNAMODB = "dynamodb"

# Snapshot document
DEFAULT_S3_PREFIX = "langchain-memory"
DATA_OBJECT_NAME = "data.json"

# DynamoDB item layout
MESSAGE_KEY_PREFIX = "MESSAGE#"
SESSION_KEY_PREFIX = "SESSION#"
ITEM_TYPE_MESSAGE = "message"
ITEM_TYPE_SESSION = "session"
DEFAULT_SESSION_INDEX = "SessionIndex"

# Keys the adapter accepts for assistant output, in priority order
OUTPUT_KEYS = ("output", "response", "text", "result")
