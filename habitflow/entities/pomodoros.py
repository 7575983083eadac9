from typing import Any, Dict

from habitflow.db import schemas
from habitflow.db.models import now_utc
from habitflow.utils.enums import PomodoroStatus

from .base import EntityBehavior

DEFAULT_DURATION_MINUTES = 25

POMODORO_CREATE_TEMPLATE = """You are a focus coach planning pomodoro sessions.
Plan {% if count is defined %}{{ count }} focused work sessions{% else %}one focused work session{% endif %} for the user's request{% if item_index is defined %} (session #{{ item_index + 1 }} in a series){% endif %}.

User request: {{ user_prompt }}
{% if fields %}
Known session details:
{{ fields | to_json }}
{% endif %}

Reply with {% if count is defined %}a JSON array of {{ count }} objects, each with:{% else %}a single JSON object:{% endif %}
- title: what to focus on (required)
- description: the concrete goal for the session
- duration: minutes, integer between 5 and 60 (default 25)
"""

POMODORO_UPDATE_TEMPLATE = """You are a focus coach. Adjust an existing pomodoro session.

Session:
{{ existing | to_json }}
{% if requested %}
Requested changes:
{{ requested | to_json }}
{% endif %}
User request: {{ user_prompt }}

Reply with a JSON object containing only changed fields.
"""


class PomodoroBehavior(EntityBehavior):
    resource_name = "pomodoro"
    create_schema = schemas.PomodoroCreate
    update_schema = schemas.PomodoroUpdate
    content_field = "description"
    create_template = POMODORO_CREATE_TEMPLATE
    update_template = POMODORO_UPDATE_TEMPLATE

    def set_defaults(self, data: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
        if is_update:
            return data
        data = {**data}
        data.setdefault("duration", DEFAULT_DURATION_MINUTES)
        data.setdefault("start_time", now_utc())
        if data.get("status") == PomodoroStatus.completed.value and not data.get("end_time"):
            data["end_time"] = now_utc()
        return data
