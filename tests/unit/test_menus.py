"""Tests for the menu / popup / dialog state machine."""

from __future__ import annotations

from sensenote.menus import MenuPosition, MenuState, MenuStateMachine


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _machine(clock: FakeClock) -> MenuStateMachine:
    return MenuStateMachine(
        dismiss_suppression=0.016, outside_click_delay=0.2, clock=clock
    )


class TestOpening:
    """Opening and replacing surfaces."""

    def test_starts_closed(self) -> None:
        machine = _machine(FakeClock())
        assert machine.state is MenuState.CLOSED
        assert not machine.is_open

    def test_selection_menu(self) -> None:
        machine = _machine(FakeClock())
        assert machine.open_selection_menu(10, 20)
        assert machine.state is MenuState.SELECTION_MENU
        assert machine.position == MenuPosition(10, 20)

    def test_popup_replaces_menu(self) -> None:
        machine = _machine(FakeClock())
        machine.open_selection_menu(1, 1)
        assert machine.open_detail_popup("hl-1", 5, 5)
        assert machine.state is MenuState.DETAIL_POPUP
        assert machine.highlight_id == "hl-1"

    def test_dialog_blocks_menus(self) -> None:
        machine = _machine(FakeClock())
        machine.open_edit_dialog("hl-1")
        assert not machine.open_selection_menu(1, 1)
        assert not machine.open_detail_popup("hl-2", 1, 1)
        assert machine.state is MenuState.EDIT_DIALOG
        assert machine.highlight_id == "hl-1"


class TestSuppression:
    """The close-then-reopen race is closed by a suppression window."""

    def test_button_close_suppresses_new_menu(self) -> None:
        clock = FakeClock()
        machine = _machine(clock)
        machine.open_detail_popup("hl-1", 0, 0)
        machine.close()
        assert machine.state is MenuState.DISMISSED
        assert machine.suppressed
        assert not machine.open_selection_menu(1, 1)

    def test_window_expires(self) -> None:
        clock = FakeClock()
        machine = _machine(clock)
        machine.open_detail_popup("hl-1", 0, 0)
        machine.close()
        clock.advance(0.02)
        assert machine.state is MenuState.CLOSED
        assert machine.open_selection_menu(1, 1)

    def test_click_away_close_does_not_suppress(self) -> None:
        machine = _machine(FakeClock())
        machine.open_selection_menu(0, 0)
        machine.close(suppress=False)
        assert machine.state is MenuState.CLOSED
        assert machine.open_selection_menu(1, 1)

    def test_closing_nothing_keeps_state(self) -> None:
        machine = _machine(FakeClock())
        machine.close()
        assert machine.state is MenuState.CLOSED


class TestOutsideClick:
    """Outside clicks only dismiss once the surface has settled."""

    def test_ignored_right_after_opening(self) -> None:
        clock = FakeClock()
        machine = _machine(clock)
        machine.open_selection_menu(0, 0)
        clock.advance(0.1)
        assert not machine.outside_click()
        assert machine.state is MenuState.SELECTION_MENU

    def test_dismisses_after_delay(self) -> None:
        clock = FakeClock()
        machine = _machine(clock)
        machine.open_detail_popup("hl-1", 0, 0)
        clock.advance(0.25)
        assert machine.outside_click()
        assert not machine.is_open
        assert machine.highlight_id is None

    def test_nothing_open(self) -> None:
        assert not _machine(FakeClock()).outside_click()
