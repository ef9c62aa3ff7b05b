"""Cross-cutting concerns: logging configuration and Logfire monitoring."""
