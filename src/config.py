"""Configuration loaded from .env"""

import os

from dotenv import load_dotenv

load_dotenv()

# Minimum samples before a series (or the mood log) is analysed
MIN_SAMPLES = int(os.getenv("NUTRIMOOD_MIN_SAMPLES", "5"))

# Chronic-deficiency rule needs at least this many micronutrient days
DEFICIENCY_MIN_DAYS = int(os.getenv("NUTRIMOOD_DEFICIENCY_MIN_DAYS", "20"))

# Slope-based early warnings need at least this many nutrition days
EARLY_WARNING_MIN_DAYS = int(os.getenv("NUTRIMOOD_EARLY_WARNING_MIN_DAYS", "14"))
EARLY_WARNING_LOOKBACK_DAYS = int(os.getenv("NUTRIMOOD_EARLY_WARNING_LOOKBACK_DAYS", "30"))

# Analysis windows
DEFAULT_WINDOW_DAYS = int(os.getenv("NUTRIMOOD_WINDOW_DAYS", "30"))
MAX_WINDOW_DAYS = 90

# Mood alerts look at the last few days only
ALERT_LOOKBACK_DAYS = int(os.getenv("NUTRIMOOD_ALERT_LOOKBACK_DAYS", "3"))
