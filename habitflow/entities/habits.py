from typing import Any, Dict

from habitflow.db import schemas
from habitflow.utils.enums import HabitFrequency, HabitStatus, choice_values

from .base import EntityBehavior

_FREQUENCIES = ", ".join(sorted(choice_values(HabitFrequency)))
_STATUSES = ", ".join(sorted(choice_values(HabitStatus)))

HABIT_CREATE_TEMPLATE = """You are a habit coach helping the user design a habit they can keep.
Create {% if count is defined %}{{ count }} distinct habits{% else %}one habit{% endif %} from the user's request{% if item_index is defined %} (variation #{{ item_index + 1 }}, make it distinct from the others){% endif %}.

User request: {{ user_prompt }}
{% if fields %}
Fields the user already chose (keep them):
{{ fields | to_json }}
{% endif %}

Reply with {% if count is defined %}a JSON array of {{ count }} objects{% else %}a single JSON object{% endif %} with these fields:
- name: short habit name (required)
- description: one or two sentences on how to practise it
- frequency: one of """ + _FREQUENCIES + """
- category: a short category label
- reward_points: integer from 1 to 10 reflecting effort
"""

HABIT_UPDATE_TEMPLATE = """You are a habit coach. Revise an existing habit.

Current habit:
{{ existing | to_json }}
{% if requested %}
Changes the user asked for:
{{ requested | to_json }}
{% endif %}
User request: {{ user_prompt }}

Reply with a JSON object containing only the fields that should change.
Allowed status values: """ + _STATUSES + """.
"""


class HabitBehavior(EntityBehavior):
    resource_name = "habit"
    create_schema = schemas.HabitCreate
    update_schema = schemas.HabitUpdate
    content_field = "description"
    create_template = HABIT_CREATE_TEMPLATE
    update_template = HABIT_UPDATE_TEMPLATE

    def set_defaults(self, data: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
        if not is_update and isinstance(data.get("name"), str):
            data = {**data, "name": data["name"].strip()}
        return data
