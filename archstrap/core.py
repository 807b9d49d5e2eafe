# core.py
from typing import Optional
from archstrap.utils.logger import RichAppLogger

# A global variable to hold the initialized logger wrapper
# It starts as None and is set by the CLI before any stage runs
app_logger: Optional[RichAppLogger] = None
