from __future__ import annotations

from typing import Callable, Optional

from loguru import logger

from services.business_profiles import business_profiles_query
from services.document_store import DocumentStore, Record
from services.live_query import DispatchFn, LiveQuery, MessageFn


ProfileListener = Callable[[Optional[Record]], None]


class ProfileContext:
	"""
	The signed-in user's business profiles and the selected one.

	Built once per client in main.py and handed to pages through PageContext.
	The first profile is selected when nothing is selected yet or when the
	selected profile disappears. Listeners are called whenever the selected
	profile or the profile list changes.
	"""

	def __init__(
		self,
		store: DocumentStore,
		*,
		dispatch: Optional[DispatchFn] = None,
		on_error: Optional[MessageFn] = None,
		selected_id: str | None = None,
	) -> None:
		self.uid: str | None = None
		self.profiles: list[Record] = []
		self.selected_id: str | None = selected_id
		self.loading = False
		self._listeners: list[ProfileListener] = []
		self._query = LiveQuery(
			store,
			on_records=self._on_profiles,
			on_error=on_error,
			dispatch=dispatch,
			label="business profiles",
		)

	@property
	def selected(self) -> Optional[Record]:
		for profile in self.profiles:
			if profile.get("id") == self.selected_id:
				return profile
		return None

	def start(self, uid: str | None) -> None:
		"""Follow `uid`'s profiles (None: signed out, clear everything)."""
		if uid == self.uid and self._query.spec is not None:
			return
		self.uid = uid
		if not uid:
			self.loading = False
			self._query.subscribe(None)
			return
		self.loading = True
		self._query.subscribe(business_profiles_query(uid))

	def switch_profile(self, profile_id: str) -> bool:
		if not any(p.get("id") == profile_id for p in self.profiles):
			logger.warning(f"[switch_profile] - unknown_profile - uid={self.uid} profile_id={profile_id}")
			return False
		if profile_id != self.selected_id:
			self.selected_id = profile_id
			logger.info(f"[switch_profile] - profile_switched - uid={self.uid} profile_id={profile_id}")
			self._notify()
		return True

	def add_listener(self, fn: ProfileListener) -> Callable[[], None]:
		self._listeners.append(fn)

		def _remove() -> None:
			if fn in self._listeners:
				self._listeners.remove(fn)

		return _remove

	def close(self) -> None:
		self._listeners.clear()
		self._query.close()

	# ----- internals -----

	def _on_profiles(self, records: list[Record]) -> None:
		previous = self.selected
		previous_profiles = self.profiles
		self.profiles = list(records)
		self.loading = False

		if not self.profiles:
			self.selected_id = None
		elif self.selected is None:
			self.selected_id = self.profiles[0].get("id")

		if self.selected != previous or self.profiles != previous_profiles:
			self._notify()

	def _notify(self) -> None:
		selected = self.selected
		for fn in list(self._listeners):
			try:
				fn(selected)
			except Exception:
				logger.exception(f"[_notify] - profile_listener_failed - uid={self.uid}")
