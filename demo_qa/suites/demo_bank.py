"""Built-in suites for the demo banking app: functional and visual login tests."""

from __future__ import annotations

from demo_qa.models.config import FrameworkConfig
from demo_qa.models.test_plan import Action, Assertion, Checkpoint, Step, TestCase, TestSuite

TIME_MESSAGE_PATTERN = r"Your nearest branch closes in:( \d+[hms])+"

MENU_ITEMS = ["Card types", "Credit cards", "Debit cards", "Lending", "Loans", "Mortgages"]

TRANSACTION_STATUSES = ["Complete", "Pending", "Declined"]

ACTION_LABELS = ["Add Account", "Make Payment", "View Statement", "Request Increase", "Pay Now"]

LOGIN_PAGE_ELEMENTS = ["div.logo-w", "id=username", "id=password", "id=log-in", "input.form-check-input"]


def _action(action_type: str, selector: str | None = None, value: str | None = None,
            description: str = "") -> Step:
    return Step(action=Action(action_type=action_type, selector=selector, value=value,
                              description=description))


def _visible(selector: str, soft: bool = False) -> Step:
    return Step(assertion=Assertion(assertion_type="element_visible", selector=selector, soft=soft))


def _soft(assertion_type: str, selector: str, **kwargs) -> Step:
    return Step(assertion=Assertion(assertion_type=assertion_type, selector=selector, soft=True, **kwargs))


def login_steps(config: FrameworkConfig) -> list[Step]:
    creds = config.credentials
    return [
        _action("fill", creds.username_selector, creds.username, "Enter username"),
        _action("fill", creds.password_selector, creds.password, "Enter password"),
        _action("click", creds.submit_selector, description="Log in"),
    ]


def functional_login_case(config: FrameworkConfig) -> TestCase:
    steps = [_action("open_site", description="Load login page")]

    # Login page must be intact before going further
    steps += [_visible(selector) for selector in LOGIN_PAGE_ELEMENTS]

    steps += login_steps(config)

    # Main page
    steps += [
        _visible("div.logo-w", soft=True),
        _visible("div.element-search.autosuggest-search-activator > input", soft=True),
        _visible("ul.main-menu", soft=True),
        _soft("element_count", "div.avatar-w img", expected_value="2"),
    ]
    steps += [_visible(f"text={label}", soft=True) for label in ACTION_LABELS]
    steps += [
        _soft("text_matches", "id=time", expected_value=TIME_MESSAGE_PATTERN,
              description="Check time message"),
        _soft("text_sequence", "ul.main-menu li span", expected_values=MENU_ITEMS,
              description="Check menu element names"),
        _soft("all_texts_in_set", "span.status-pill + span", expected_values=TRANSACTION_STATUSES,
              description="Check transaction statuses"),
    ]

    return TestCase(
        test_id="functional_login",
        name="should log into the demo app",
        description="Traditional assertion-based login test",
        category="functional",
        steps=steps,
    )


def visual_login_case(config: FrameworkConfig) -> TestCase:
    steps = [
        _action("open_site", description="Load login page"),
        Step(checkpoint=Checkpoint(label="Login page", target="window", fully=True)),
        *login_steps(config),
        Step(checkpoint=Checkpoint(label="Main page", target="window", fully=True, match_level="layout")),
    ]
    return TestCase(
        test_id="visual_login",
        name="should log into the demo app",
        description="Visual login test across the browser/device matrix",
        category="visual",
        visual_test_name="Login",
        steps=steps,
    )


def functional_suite(config: FrameworkConfig) -> TestSuite:
    return TestSuite(
        suite_id="functional",
        name="A traditional test",
        execution_mode="parallel",
        test_cases=[functional_login_case(config)],
    )


def visual_suite(config: FrameworkConfig) -> TestSuite:
    return TestSuite(
        suite_id="visual",
        name="A visual test",
        execution_mode="parallel",
        test_cases=[visual_login_case(config)],
    )


BUILTIN_SUITES = {
    "functional": functional_suite,
    "visual": visual_suite,
}


def build_suites(config: FrameworkConfig, names: list[str]) -> list[TestSuite]:
    """Build the named built-in suites (``all`` selects every suite)."""
    if "all" in names:
        names = list(BUILTIN_SUITES)
    unknown = [n for n in names if n not in BUILTIN_SUITES]
    if unknown:
        raise ValueError(f"Unknown suite(s): {', '.join(unknown)}")
    return [BUILTIN_SUITES[n](config) for n in names]
