from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AppState:
	# ---- session ----
	user_name: str = ""
	is_admin: bool = False

	# ---- business profiles ----
	selected_profile_id: str = ""
	selected_profile_name: str = ""
	profile_count: int = 0

	# ---- navigation ----
	current_route: str = ""
