from typing import Any, Dict

from habitflow.db import schemas
from habitflow.db.models import now_utc
from habitflow.utils.enums import TodoPriority, TodoStatus, choice_values

from .base import EntityBehavior

TODO_CREATE_TEMPLATE = """You are a task management assistant.
Turn the user's request into {% if count is defined %}{{ count }} distinct actionable todos{% else %}one actionable todo{% endif %}{% if item_index is defined %} (item #{{ item_index + 1 }} of a list, do not repeat earlier items){% endif %}.

User request: {{ user_prompt }}
{% if fields %}
Partial todo supplied by the user (keep these values):
{{ fields | to_json }}
{% endif %}

Reply with {% if count is defined %}a JSON array of {{ count }} objects, each with:{% else %}a single JSON object:{% endif %}
- title: task title (required)
- description: what done looks like
- priority: one of """ + ", ".join(sorted(choice_values(TodoPriority))) + """ (default medium)
- planned_date: YYYY-MM-DD (optional)
- planned_start_time / planned_end_time: ISO 8601 (optional)
"""

TODO_UPDATE_TEMPLATE = """You are a task management assistant. Update an existing todo.

Original todo:
{{ existing | to_json }}
{% if requested %}
Requested changes:
{{ requested | to_json }}
{% endif %}
User request: {{ user_prompt }}

Only include fields that should change. Status must be one of """ + ", ".join(sorted(choice_values(TodoStatus))) + """.
Reply with a strict JSON object.
"""


class TodoBehavior(EntityBehavior):
    resource_name = "todo"
    create_schema = schemas.TodoCreate
    update_schema = schemas.TodoUpdate
    content_field = "description"
    create_template = TODO_CREATE_TEMPLATE
    update_template = TODO_UPDATE_TEMPLATE

    def set_defaults(self, data: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
        # a todo created already completed gets its completion time now
        if not is_update and data.get("status") == TodoStatus.completed.value and not data.get("completed_at"):
            data = {**data, "completed_at": now_utc()}
        return data
