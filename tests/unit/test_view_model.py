"""Unit tests for the view model."""

from datetime import datetime


class TestSelection:
    """Tests for list cursors."""

    def test_issue_selection_clamped_and_followed(self, issue_factory):
        """Test the cursor stays in range and the viewport follows it."""
        from sentry_tui.tui import ViewModel

        vm = ViewModel(issues=tuple(issue_factory(n) for n in range(10)))

        vm.move_issue_selection(-1, viewport=3)
        assert vm.selected_index == 0

        vm.move_issue_selection(4, viewport=3)
        assert vm.selected_index == 4
        assert vm.scroll_offset == 2

        vm.move_issue_selection(100, viewport=3)
        assert vm.selected_index == 9
        assert vm.scroll_offset == 7

        vm.move_issue_selection(-9, viewport=3)
        assert vm.scroll_offset == 0

    def test_unchanged_selection_does_not_touch(self, issue_factory):
        from sentry_tui.tui import ViewModel

        vm = ViewModel(issues=(issue_factory(1),))
        revision = vm.revision

        vm.move_issue_selection(1, viewport=5)

        assert vm.revision == revision


class TestSnapshots:
    """Tests for replacing the issue snapshot."""

    def test_first_load_flags_nothing(self, issue_factory):
        from sentry_tui.tui import ViewModel

        vm = ViewModel()
        vm.reset_snapshot(("acme", "web"))

        new = vm.replace_issues([issue_factory(1)], ("acme", "web"), datetime(2026, 1, 1))

        assert new == set()

    def test_new_ids(self, issue_factory):
        """Test only ids absent from the previous snapshot are reported."""
        from sentry_tui.tui import ViewModel

        vm = ViewModel()
        key = ("acme", "web")
        vm.replace_issues([issue_factory(n) for n in (1, 2, 3)], key, datetime(2026, 1, 1))

        new = vm.replace_issues([issue_factory(n) for n in (2, 3, 4)], key, datetime(2026, 1, 2))

        assert new == {"4"}
        assert [issue.id for issue in vm.issues] == ["2", "3", "4"]

    def test_selection_clamped_when_list_shrinks(self, issue_factory):
        from sentry_tui.tui import ViewModel

        vm = ViewModel(issues=tuple(issue_factory(n) for n in range(5)), selected_index=4)

        vm.replace_issues([issue_factory(1)], ("acme", "web"), datetime(2026, 1, 1))

        assert vm.selected_index == 0

    def test_transition_bumps_generation(self):
        from sentry_tui.tui import OrgListState, ViewModel

        vm = ViewModel()
        vm.transition(OrgListState())

        assert vm.generation == 1


class TestErrors:
    """Tests for status bar error text."""

    def test_unauthorized_names_login_command(self):
        from sentry_tui.client import UnauthorizedError
        from sentry_tui.tui.view_model import describe_error

        assert describe_error(UnauthorizedError(), "acme") == (
            "Token rejected. Run: sentry-tui login acme <token>"
        )

    def test_rate_limited(self):
        from sentry_tui.client import RateLimitedError
        from sentry_tui.tui.view_model import describe_error

        assert "30s" in describe_error(RateLimitedError(30))
