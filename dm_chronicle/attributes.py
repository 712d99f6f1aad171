"""Effective attribute resolution.

Effective attributes = base attributes + bonuses from every selected
customization option. They are derived on demand and never written back into
the game state, so re-deriving can't double-count bonuses.
"""

from collections.abc import Mapping

from dm_chronicle.models import Scenario


def resolve_attributes(
    base_attributes: Mapping[str, int],
    selections: Mapping[str, str],
    scenario: Scenario,
) -> dict[str, int]:
    """Return base attributes with customization bonuses added.

    Selections naming a category or option the scenario doesn't have are
    skipped. A bonus for an attribute missing from the base creates it.
    """
    resolved = dict(base_attributes)
    for category_key, option_key in selections.items():
        category = scenario.customizations.get(category_key)
        if category is None:
            continue
        option = category.options.get(option_key)
        if option is None:
            continue
        for attr, bonus in option.attribute_bonus.items():
            resolved[attr] = resolved.get(attr, 0) + bonus
    return resolved
