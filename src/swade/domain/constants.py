BASE_PACE = 6
BASE_PARRY = 2
BASE_TOUGHNESS = 2

PARRY_SKILL_NAME = "Fighting"
TOUGHNESS_ATTRIBUTE_NAME = "Vigor"
ENCUMBRANCE_ATTRIBUTE_NAME = "Strength"

STARTING_ATTRIBUTE_POINTS = 5
STARTING_SKILL_POINTS = 12
STARTING_WEALTH = 500
MAX_HINDRANCE_POINTS = 4

EDGE_HINDRANCE_POINT_COST = 2
ATTRIBUTE_HINDRANCE_POINT_COST = 2
SKILL_HINDRANCE_POINT_RATIO = 1
WEALTH_PER_HINDRANCE_POINT = STARTING_WEALTH
GEAR_RESALE_DIVISOR = 2

ENCUMBRANCE_PENALTY = 2
LOAD_LIMIT_BY_STRENGTH = {4: 20.0, 6: 40.0, 8: 60.0, 10: 80.0, 12: 100.0}
LOAD_LIMIT_PER_STEP_ABOVE_CEILING = 20.0

SOURCE_CHOSEN = "chosen"
SOURCE_ANCESTRY = "ancestry"
SOURCE_ARCANE_BACKGROUND = "arcane_background"
SOURCE_ADVANCEMENT = "advancement"
SOURCE_ADVANCEMENT_REDUCED = "advancement_reduced"
SOURCE_HINDRANCE_POINTS = "hindrance_points"

VALID_SOURCES: tuple[str, ...] = (
    SOURCE_CHOSEN,
    SOURCE_ANCESTRY,
    SOURCE_ARCANE_BACKGROUND,
    SOURCE_ADVANCEMENT,
    SOURCE_ADVANCEMENT_REDUCED,
    SOURCE_HINDRANCE_POINTS,
)
