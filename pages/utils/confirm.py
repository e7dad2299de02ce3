from __future__ import annotations

from nicegui import ui


async def confirm(
	message: str,
	*,
	title: str = "Please confirm",
	ok_label: str = "Delete",
	ok_color: str = "negative",
) -> bool:
	"""
	Opens a confirmation dialog and waits for the answer.
	Returns True only when the user pressed the confirm button (Esc / backdrop -> False).
	"""
	d = ui.dialog()
	with d:
		with ui.card().classes("w-[min(480px,95vw)] gap-3 p-0 overflow-hidden"):
			with ui.row().classes(f"w-full h-10 items-center px-4 bg-{ok_color} text-white"):
				ui.label(title).classes("text-lg font-semibold")
			with ui.column().classes("w-full p-4 gap-4"):
				ui.label(message).classes("text-sm text-gray-600")
				with ui.row().classes("w-full justify-end gap-2"):
					ui.button("Cancel", on_click=lambda: d.submit(False)).props("flat")
					ui.button(ok_label, on_click=lambda: d.submit(True)).props(f"color={ok_color}")

	result = await d
	d.delete()
	return bool(result)
