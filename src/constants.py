"""
Shared constants used across multiple modules.
Single source of truth for metric categories, RDA values and rule thresholds.
"""

# Nutrition totals come from the meal log; a day without meals is a real zero
NUTRITION_METRICS = (
    "calories", "protein", "carbs", "fat", "sugar", "sodium", "fiber",
)

# Subjective 1-10 scores from the wellness log; never zero-filled
WELLNESS_METRICS = (
    "mood", "energy", "productivity", "stress", "sleep_quality",
)

# Wellness metric -> column of a mood/wellness log entry
WELLNESS_FIELDS = {
    "mood": "mood_score",
    "energy": "energy_level",
    "productivity": "productivity_score",
    "stress": "stress_level",
    "sleep_quality": "sleep_quality",
}

EXERCISE_METRIC = "exercise"

# Recommended daily amounts (mg unless noted; fiber in g, vitamin D in ug)
RDA_TABLE = {
    "vitamin_c": 90.0,
    "vitamin_d": 20.0,
    "iron": 18.0,
    "calcium": 1000.0,
    "fiber": 25.0,
    "magnesium": 400.0,
    "zinc": 11.0,
    "potassium": 3400.0,
    "vitamin_b12": 2.4,
    "folate": 400.0,
}
DEFAULT_RDA = 100.0

MICRONUTRIENT_METRICS = tuple(k for k in RDA_TABLE if k != "fiber")

# Micronutrients scanned for chronic deficiency when the caller gives none
DEFICIENCY_NUTRIENTS = ("vitamin_c", "vitamin_d", "iron", "calcium")

# Early-warning slope rules: nutrient -> (slope threshold per day, severity, target reduction)
SLOPE_RULES = {
    "sodium": (50.0, "medium", "20%"),
    "sugar": (5.0, "medium", "15%"),
    "fat": (3.0, "low", "10%"),
}

DEFICIENCY_RATIO = 0.7        # below 70% of RDA counts as a deficient day
DEFICIENCY_DAY_SHARE = 0.6    # deficient on more than 60% of days

# Trend / pattern thresholds
TREND_CHANGE_PCT = 5.0
STRONG_CORRELATION = 0.5
VERY_STRONG_CORRELATION = 0.7
GROUP_DIFF_THRESHOLD = 1.0
WEEKLY_RANGE_THRESHOLD = 2.0

# Sugar intake buckets (g/day): (label, low inclusive, high exclusive)
SUGAR_BUCKETS = (
    ("low", None, 25.0),
    ("medium", 25.0, 50.0),
    ("high", 50.0, None),
)

SEVERITY_PENALTY = {"high": 30, "medium": 15, "low": 5}

WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
)

# Food sources used for deficiency / goal hints
FOOD_SOURCES = {
    "vitamin_c": ["oranges", "strawberries", "bell peppers", "broccoli"],
    "vitamin_d": ["fatty fish", "fortified milk", "egg yolks"],
    "iron": ["lean meat", "spinach", "lentils", "fortified cereals"],
    "calcium": ["dairy products", "leafy greens", "almonds"],
    "fiber": ["whole grains", "beans", "fruits", "vegetables"],
    "magnesium": ["pumpkin seeds", "dark chocolate", "spinach"],
}
