# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""Global logger instance for ArgScope."""
import logging

logger: logging.Logger = logging.getLogger("argscope")
