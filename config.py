import os
from types import MappingProxyType

from dotenv import load_dotenv

load_dotenv()

# --- Runtime settings ---
TRACT_DATA_PATH = os.getenv("TRACT_DATA_PATH", "data/tracts.json")
AI_MODEL_NAME = os.getenv("AI_MODEL_NAME", "gemini-2.5-flash")
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "3"))
AI_RETRY_BASE_DELAY = float(os.getenv("AI_RETRY_BASE_DELAY", "1.0"))
SCORING_ENDPOINT_URL = os.getenv("SCORING_ENDPOINT_URL", "")
SCORING_API_KEY = os.getenv("SCORING_API_KEY")
SCORING_TIMEOUT = float(os.getenv("SCORING_TIMEOUT", "30"))

# The six scoring factors, in canonical display order.
FACTOR_IDS = ("demographic", "foot_traffic", "crime", "flood_risk", "rent_score", "poi")

# Default weights as percentages (sum to 100).
DEFAULT_WEIGHT_PERCENTAGES = MappingProxyType({
    "demographic": 40,
    "foot_traffic": 30,
    "crime": 15,
    "flood_risk": 10,
    "rent_score": 5,
    "poi": 0,
})

# Fractions the scoring pipeline starts from before a request overrides them.
SCORING_DEFAULT_FRACTIONS = MappingProxyType({
    "foot_traffic": 0.35,
    "demographic": 0.25,
    "crime": 0.15,
    "flood_risk": 0.10,
    "rent_score": 0.10,
    "poi": 0.05,
})

# Display metadata per factor: label, icon, color.
FACTOR_DISPLAY = MappingProxyType({
    "demographic": MappingProxyType({"label": "Demographic Match", "icon": "👨‍👩‍👧‍👦", "color": "#34A853"}),
    "foot_traffic": MappingProxyType({"label": "Foot Traffic", "icon": "👥", "color": "#4285F4"}),
    "crime": MappingProxyType({"label": "Safety", "icon": "🛡️", "color": "#EA4335"}),
    "flood_risk": MappingProxyType({"label": "Flood Risk", "icon": "🌊", "color": "#FBBC04"}),
    "rent_score": MappingProxyType({"label": "Rent", "icon": "🏠", "color": "#FF6D01"}),
    "poi": MappingProxyType({"label": "Points of Interest", "icon": "📍", "color": "#805AD5"}),
})

DEFAULT_DEMOGRAPHIC_WEIGHTS = MappingProxyType({
    "ethnicity": 0.4,
    "age": 0.3,
    "income": 0.2,
    "gender": 0.1,
})

# Synonyms a user (or the assistant) may use for each coarse group.
ETHNICITY_ALIASES = MappingProxyType({
    "asian": ("asian", "asianamerican"),
    "black": ("black", "africanamerican", "blackamerican"),
    "white": ("white", "caucasian"),
    "hispanic": ("hispanic", "latino", "latina", "latinx"),
    "nativeamerican": ("nativeamerican", "americanindian", "alaskanative", "indigenous"),
    "middleeastern": ("middleeastern", "northafrican", "arab"),
    "pacificislander": ("pacificislander", "nativehawaiian"),
})

# Two-level taxonomy: five groups, each followed by its leaves.
# Entries are (key, label, value, parent); groups are their own parent.
ETHNICITY_TAXONOMY = (
    ("group_White", "White", "group_White", "group_White"),
    ("Eastern-European", "Eastern European", "Eastern-European", "group_White"),
    ("Western-European", "Western European", "Western-European", "group_White"),
    ("group_Black", "Black or African American", "group_Black", "group_Black"),
    ("African", "African", "African", "group_Black"),
    ("Caribbean", "Caribbean", "Caribbean", "group_Black"),
    ("African-American", "African American", "African-American", "group_Black"),
    ("group_Asian", "Asian", "group_Asian", "group_Asian"),
    ("East-Asian", "East Asian", "East-Asian", "group_Asian"),
    ("South-Asian", "South Asian", "South-Asian", "group_Asian"),
    ("Southeast-Asian", "Southeast Asian", "Southeast-Asian", "group_Asian"),
    ("group_Hispanic", "Hispanic or Latino", "group_Hispanic", "group_Hispanic"),
    ("Mexican", "Mexican", "Mexican", "group_Hispanic"),
    ("Puerto-Rican", "Puerto Rican", "Puerto-Rican", "group_Hispanic"),
    ("Cuban", "Cuban", "Cuban", "group_Hispanic"),
    ("Dominican", "Dominican", "Dominican", "group_Hispanic"),
    ("Central-American", "Central American", "Central-American", "group_Hispanic"),
    ("South-American", "South American", "South-American", "group_Hispanic"),
    ("Caribbean-Hispanic", "Caribbean Hispanic", "Caribbean-Hispanic", "group_Hispanic"),
    ("group_Other", "Other", "group_Other", "group_Other"),
    ("MENA", "Middle Eastern or North African", "MENA", "group_Other"),
    ("Multiracial", "Multiracial", "Multiracial", "group_Other"),
    ("Native-American", "Native American or Alaska Native", "Native-American", "group_Other"),
    ("NHPI", "Native Hawaiian or Pacific Islander", "NHPI", "group_Other"),
)

# Group name -> how its members are selected: ("parent", parent key) or ("label", substring).
ETHNICITY_GROUP_RULES = MappingProxyType({
    "white": ("parent", "group_White"),
    "black": ("parent", "group_Black"),
    "asian": ("parent", "group_Asian"),
    "hispanic": ("parent", "group_Hispanic"),
    "middleeastern": ("label", "middle east"),
    "southasian": ("label", "south asia"),
    "nativeamerican": ("label", "native"),
    "pacificislander": ("label", "pacific"),
})

MAX_ETHNICITY_SELECTIONS = 8

# Census age brackets available per tract (inclusive bounds).
AGE_BRACKETS = (
    {"key": "Under 5 years (%)", "min": 0, "max": 4},
    {"key": "25 to 29 years (%)", "min": 25, "max": 29},
    {"key": "65 years and over (%)", "min": 65, "max": 120},
)

# Household income bracket columns (inclusive dollar bounds).
INCOME_BRACKETS = (
    {"key": "HHIU10E", "min": 0, "max": 9999},
    {"key": "HHI10t14E", "min": 10000, "max": 14999},
    {"key": "HHI15t24E", "min": 15000, "max": 24999},
    {"key": "HHI25t34E", "min": 25000, "max": 34999},
    {"key": "HHI35t49E", "min": 35000, "max": 49999},
    {"key": "HHI50t74E", "min": 50000, "max": 74999},
    {"key": "HHI75t99E", "min": 75000, "max": 99999},
    {"key": "HI100t149E", "min": 100000, "max": 149999},
    {"key": "HI150t199E", "min": 150000, "max": 199999},
    {"key": "HHI200plE", "min": 200000, "max": 999999},
)

GENDER_COLUMNS = MappingProxyType({"male": "Male (%)", "female": "Female (%)"})
TOTAL_POPULATION_COLUMN = "Total population"
ETHNICITY_TOTAL_COLUMN = "total_population"

# Tracts that always pass the rent filter.
WATCHED_ZONES = frozenset({
    "36061019500",
    "36061019100",
    "36061018700",
    "36061019300",
    "36061018900",
    "36061018500",
})

# County FIPS (GEOID digits 3-5) -> borough.
BOROUGH_BY_COUNTY = MappingProxyType({
    "061": "Manhattan",
    "005": "Bronx",
    "047": "Brooklyn",
    "081": "Queens",
    "085": "Staten Island",
})

VALID_GENDERS = ("male", "female")
VALID_TIME_PERIODS = ("morning", "afternoon", "evening")

# Range bounds: filter defaults and the limits the assistant may propose.
DEFAULT_AGE_RANGE = (0, 100)
DEFAULT_INCOME_RANGE = (0, 250000)
ASSISTANT_RENT_BOUNDS = (26, 160)  # $/sq ft
DEFAULT_TOP_PERCENT = 10

# Match-percentage thresholds used by the demographic curve (percent).
MATCH_THRESHOLDS = MappingProxyType({
    "excellent": 30,
    "strong": 25,
    "good": 20,
    "average": 15,
    "weak": 10,
    "poor": 5,
})

ASSISTANT_FALLBACK_MESSAGE = (
    "I understand you're looking for NYC neighborhoods! Try asking me something specific "
    "like 'show me safe Puerto Rican areas' or 'busy morning spots with good restaurants'."
)
SCORING_FALLBACK_MESSAGE = "Unable to load neighborhood scores right now. Please try again in a moment."
