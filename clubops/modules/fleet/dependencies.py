"""
Dependencies для модуля Fleet.
get_db — общий с core; текущий сотрудник — непрозрачный id из JWT.
"""
from clubops.core.auth import get_current_actor_id as core_get_current_actor_id
from clubops.core.database import get_db as core_get_db

get_db = core_get_db
get_current_actor_id = core_get_current_actor_id
