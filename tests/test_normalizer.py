import pytest

from ux_agent.models import (
    ClickAction,
    DOMElement,
    HoverAction,
    NavigateAction,
    PageState,
    ScrollAction,
    TypeAction,
    WaitAction,
)
from ux_agent.normalizer import (
    build_user_message,
    dom_to_text,
    extract_json_object,
    fallback_analysis,
    normalize_action,
    normalize_issues,
    normalize_result,
)


def make_state(**kwargs):
    defaults = dict(url="http://localhost:3000/", title="Home", dom=[])
    defaults.update(kwargs)
    return PageState(**defaults)


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"progress": 10}') == {"progress": 10}

    def test_object_wrapped_in_prose(self):
        text = 'Sure! Here is my analysis:\n```json\n{"currentPage": "Home", "progress": 5}\n```\nHope it helps.'
        assert extract_json_object(text) == {"currentPage": "Home", "progress": 5}

    @pytest.mark.parametrize("text", ["", "no json here", '{"progress": ', "[1, 2, 3]", None, 42])
    def test_unusable_input(self, text):
        assert extract_json_object(text) is None

    def test_deeply_nested_reply(self):
        assert extract_json_object('{"a": ' + "[" * 100000) is None


class TestNormalizeAction:
    def test_non_object_is_none(self):
        assert normalize_action("click the button") is None
        assert normalize_action(None) is None

    def test_unknown_type_collapses_to_short_wait(self):
        assert normalize_action({"type": "teleport"}) == WaitAction(timeout=1000, description="Default wait action")

    def test_type_is_case_insensitive(self):
        assert normalize_action({"type": "CLICK", "text": "Save"}) == ClickAction(text="Save")

    def test_wait_timeout_defaults_and_clamps(self):
        assert normalize_action({"type": "wait"}).timeout == 1000
        assert normalize_action({"type": "wait", "timeout": 999999}).timeout == 30000
        assert normalize_action({"type": "wait", "timeout": -5}).timeout == 0
        assert normalize_action({"type": "wait", "timeout": "2500"}).timeout == 2500

    def test_navigate_url_defaults_to_root(self):
        assert normalize_action({"type": "navigate"}) == NavigateAction(url="/")

    def test_scroll_direction_and_amount(self):
        assert normalize_action({"type": "scroll", "direction": "sideways", "amount": "abc"}) == ScrollAction()
        assert normalize_action({"type": "scroll", "direction": "up", "amount": 120}) == ScrollAction(
            direction="up", amount=120
        )

    def test_click_position_must_be_numeric(self):
        assert normalize_action({"type": "click", "position": {"x": "a", "y": 1}}).position is None
        assert normalize_action({"type": "click", "position": {"x": 10, "y": 20}}).position == {"x": 10, "y": 20}

    def test_missing_required_fields_are_left_for_the_executor(self):
        assert normalize_action({"type": "type"}) == TypeAction(text="")
        assert normalize_action({"type": "hover"}) == HoverAction(selector="")


class TestNormalizeIssues:
    def test_defaults(self):
        issues = normalize_issues([{"severity": "catastrophic", "category": 7}, "junk", {"id": "x", "title": "T"}])
        assert [i.id for i in issues] == ["issue-0", "x"]
        assert issues[0].severity == "minor"
        assert issues[0].category == "usability"
        assert issues[0].title == "Unknown Issue"
        assert issues[1].title == "T"

    def test_keeps_valid_values(self):
        [issue] = normalize_issues(
            [
                {
                    "id": "no-label",
                    "severity": "major",
                    "category": "accessibility",
                    "title": "Input has no label",
                    "description": "Screen readers cannot name the search box",
                    "suggestion": "Add aria-label",
                    "reproductionSteps": ["open home", 3, None],
                }
            ]
        )
        assert issue.severity == "major"
        assert issue.category == "accessibility"
        assert issue.suggestion == "Add aria-label"
        assert issue.reproduction_steps == ["open home", "3"]

    def test_not_a_list(self):
        assert normalize_issues({"id": "x"}) == []


class TestNormalizeResult:
    def test_empty_object_gets_defaults(self):
        result = normalize_result({})
        assert result.current_page == "Unknown"
        assert result.current_state == "Unknown"
        assert result.available_actions == []
        assert result.suggested_next_action is None
        assert result.ux_issues == []
        assert result.progress == 0

    @pytest.mark.parametrize(
        "raw, expected",
        [(150, 100), (-20, 0), ("50%", 50), ("lots", 0), (True, 0), (float("nan"), 0), (42.5, 42.5)],
    )
    def test_progress_is_clamped(self, raw, expected):
        assert normalize_result({"progress": raw}).progress == expected

    def test_integers_beyond_float_range_are_defaulted(self):
        huge = "9" * 400
        parsed = extract_json_object(
            '{"progress": %s, "suggestedNextAction": {"type": "wait", "timeout": %s}}' % (huge, huge)
        )
        result = normalize_result(parsed)
        assert result.progress == 0
        assert result.suggested_next_action.timeout == 1000

        click = normalize_action({"type": "click", "position": {"x": int(huge), "y": 1}})
        assert click.position is None
        scroll = normalize_action({"type": "scroll", "amount": int(huge)})
        assert scroll.amount is None

    def test_mistyped_fields_fall_back_independently(self):
        result = normalize_result(
            {
                "currentPage": {"nested": True},
                "availableActions": "click",
                "suggestedNextAction": {"type": "navigate", "url": "/projects"},
                "progress": 30,
            }
        )
        assert result.current_page == "Unknown"
        assert result.available_actions == []
        assert result.suggested_next_action == NavigateAction(url="/projects")
        assert result.progress == 30


class TestFallbackAnalysis:
    def test_create_project_goal_types_into_textarea(self):
        result = fallback_analysis(make_state(), "Explore the app and try to create a new project")
        assert result.suggested_next_action == TypeAction(
            selector="textarea",
            text="create a project called TestStore",
            description="Type project creation request in chat",
        )
        assert result.progress == 0
        assert result.ux_issues == []

    def test_navigation_goal_clicks_dashboard(self):
        result = fallback_analysis(make_state(), "Go to the dashboard")
        assert isinstance(result.suggested_next_action, ClickAction)
        assert result.suggested_next_action.text == "Dashboard"

    def test_other_goals_wait(self):
        result = fallback_analysis(make_state(), "Search for a project that does not exist")
        assert result.suggested_next_action.type == "wait"
        assert result.suggested_next_action.timeout == 2000

    def test_issues_come_from_local_buffers(self):
        state = make_state(
            errors=["TypeError: x is undefined"],
            network_errors=["GET http://localhost:3000/api - net::ERR_FAILED"],
            console_messages=["[WARN] deprecated", "[ERROR] boom"],
        )
        result = fallback_analysis(state, "anything")
        assert [(i.id, i.severity, i.category) for i in result.ux_issues] == [
            ("js-errors", "major", "functionality"),
            ("network-errors", "major", "functionality"),
            ("console-errors", "minor", "functionality"),
        ]

    def test_is_deterministic(self):
        state = make_state(errors=["boom"])
        assert fallback_analysis(state, "go to settings") == fallback_analysis(state, "go to settings")

    def test_current_page_falls_back_to_url(self):
        assert fallback_analysis(make_state(title=""), "x").current_page == "http://localhost:3000/"


class TestUserMessage:
    def test_sections(self):
        dom = [
            DOMElement(
                tag="form",
                children=[
                    DOMElement(tag="input", type="text", placeholder="Search"),
                    DOMElement(tag="button", text="Go", disabled=True),
                    DOMElement(tag="span", text="hidden", visible=False),
                ],
            )
        ]
        state = make_state(dom=dom, errors=["boom"])
        message = build_user_message(state, "Search", ["click: Open search"])

        assert "GOAL: Search" in message
        assert "PREVIOUS ACTIONS:\n1. click: Open search" in message
        assert '  <input type="text" placeholder="Search">' in message
        assert "  <button disabled> Go" in message
        assert "hidden" not in message
        assert "JAVASCRIPT ERRORS:\nboom" in message
        assert "NETWORK ERRORS" not in message

    def test_empty_dom(self):
        assert dom_to_text([]) == ""
        assert "PAGE CONTENT:\n(empty)" in build_user_message(make_state(), "g", [])
