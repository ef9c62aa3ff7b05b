"""Server-wide constants."""

PROJECT_NAME = "conveyor-ai"
API_V1_STR = "/api/v1"
VERSION = "0.1.0"
