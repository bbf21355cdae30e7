CONTRACT_VERSION = "1.1.0"

ADVANCEMENT_COMMAND_INTENTS = (
    "apply_edge_advance",
    "apply_attribute_advance",
    "apply_cheap_skill_advance",
    "apply_expensive_skill_advance",
    "apply_hindrance_advance",
    "undo_advance",
)

ADVANCEMENT_QUERY_INTENTS = (
    "get_advancement_options",
    "get_advancement_history",
)

CHARACTER_COMMAND_INTENTS = (
    "set_gear_equipped",
    "update_attribute",
    "update_skill",
    "add_edge",
    "allocate_hindrance_points",
    "add_hindrance",
    "remove_draft_hindrance",
    "remove_draft_edge",
    "update_draft_ancestry",
    "add_draft_arcane_background",
    "remove_draft_arcane_background",
    "add_draft_power",
    "remove_draft_power",
    "purchase_gear",
    "sell_gear",
)

CHARACTER_QUERY_INTENTS = (
    "get_character_view",
    "list_characters",
    "check_attribute_decrement_impact",
    "check_skill_decrement_impact",
)

CONTRACT_DTO_TYPES = (
    "AdvancementOptions",
    "AdvanceResult",
    "AdvanceView",
    "UndoResult",
    "CommandResult",
    "ValidationWarning",
)
