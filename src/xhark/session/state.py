"""Session state and its pure transitions.

SessionState is frozen: every transition takes a state and returns a new
one, leaving the input untouched. Effects (HTTP calls, token fetches, the
external editor) live in ``xhark.session.controller``; rendering only reads
the state.

Screens: EndpointList -> Builder -> Response. The auth modal is an overlay
(``state.auth``) that returns to whatever screen is underneath when closed.
"""

from collections.abc import Mapping, Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict

from xhark.client.executor import Result
from xhark.client.request import RequestSpec
from xhark.parser.base import Endpoint, SecurityScheme

from .fuzzy import rank_endpoints

QUICK_SELECT_COUNT = 5
NO_SCHEMES_MESSAGE = "no security schemes found (load OpenAPI first)"


class Screen(str, Enum):
    ENDPOINT_LIST = "endpoints"
    BUILDER = "builder"
    RESPONSE = "response"
    AUTH_MODAL = "auth"


class Pane(str, Enum):
    PATH = "path"
    QUERY = "query"
    BODY = "body"


PANE_ORDER = (Pane.PATH, Pane.QUERY, Pane.BODY)


class AuthField(str, Enum):
    TOKEN = "token"
    USERNAME = "username"
    PASSWORD = "password"
    SCOPE = "scope"


PASSWORD_FLOW_FIELDS = (AuthField.USERNAME, AuthField.PASSWORD, AuthField.SCOPE)


class EditTarget(BaseModel):
    """The field being edited in the builder's edit modal."""

    model_config = ConfigDict(frozen=True)

    pane: Pane
    field: str
    buffer: str = ""


class AuthModal(BaseModel):
    """Auth overlay state. ``focus`` is None while the scheme list has focus."""

    model_config = ConfigDict(frozen=True)

    schemes: list[str]
    selected: int = 0
    focus: AuthField | None = None
    token: str = ""
    username: str = ""
    password: str = ""
    scope: str = ""
    error: str = ""

    @property
    def active_scheme(self) -> str:
        if not self.schemes:
            return ""
        return self.schemes[self.selected]


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    screen: Screen = Screen.ENDPOINT_LIST

    # endpoint list
    filter_text: str = ""
    filtered: list[int] = []
    selected: int = 0

    # builder
    active_index: int | None = None
    active_endpoint: Endpoint | None = None
    path_values: dict[str, str] = {}
    query_values: dict[str, str] = {}
    body_values: dict[str, str] = {}
    raw_body: str = ""
    pane: Pane = Pane.PATH
    row: int = 0
    edit: EditTarget | None = None

    auth: AuthModal | None = None

    # response
    last_request: RequestSpec | None = None
    last_result: Result | None = None
    scroll: int = 0

    error: str = ""

    @property
    def current_screen(self) -> Screen:
        return Screen.AUTH_MODAL if self.auth is not None else self.screen

    @property
    def editing(self) -> bool:
        return self.edit is not None

    @property
    def in_builder(self) -> bool:
        """Builder has focus with no modal open."""
        return self.screen == Screen.BUILDER and self.edit is None and self.auth is None

    def values_for(self, pane: Pane) -> dict[str, str]:
        if pane == Pane.PATH:
            return self.path_values
        if pane == Pane.QUERY:
            return self.query_values
        return self.body_values


def _update(state, **changes):
    return state.model_copy(update=changes)


def initial_state(endpoints: Sequence[Endpoint]) -> SessionState:
    return SessionState(filtered=list(range(len(endpoints))))


def set_error(state: SessionState, message: str) -> SessionState:
    return _update(state, error=message)


# endpoint list


def set_filter(state: SessionState, endpoints: Sequence[Endpoint], text: str) -> SessionState:
    """Re-rank the whole catalog against ``text``."""
    filtered = rank_endpoints(text, endpoints)
    selected = state.selected if state.selected < len(filtered) else 0
    return _update(state, filter_text=text, filtered=filtered, selected=selected)


def type_filter(state: SessionState, endpoints: Sequence[Endpoint], text: str) -> SessionState:
    if state.current_screen != Screen.ENDPOINT_LIST:
        return state
    return set_filter(state, endpoints, state.filter_text + text)


def backspace_filter(state: SessionState, endpoints: Sequence[Endpoint]) -> SessionState:
    if state.current_screen != Screen.ENDPOINT_LIST or not state.filter_text:
        return state
    return set_filter(state, endpoints, state.filter_text[:-1])


def move_selection(state: SessionState, delta: int) -> SessionState:
    if state.current_screen != Screen.ENDPOINT_LIST or not state.filtered:
        return state
    selected = max(0, min(state.selected + delta, len(state.filtered) - 1))
    return _update(state, selected=selected)


def select_endpoint(state: SessionState, endpoints: Sequence[Endpoint]) -> SessionState:
    """Open the highlighted endpoint in the builder with empty values.

    This is the only transition that resets the value maps, so re-opening
    the same endpoint also starts from scratch.
    """
    if state.current_screen != Screen.ENDPOINT_LIST or not state.filtered:
        return state
    index = state.filtered[state.selected]
    endpoint = endpoints[index]
    return _update(
        state,
        screen=Screen.BUILDER,
        active_index=index,
        active_endpoint=endpoint,
        path_values={},
        query_values={},
        body_values={},
        raw_body="",
        pane=_first_visible_pane(endpoint, Pane.PATH),
        row=0,
        edit=None,
        error="",
    )


def quick_select(state: SessionState, endpoints: Sequence[Endpoint], number: int) -> SessionState:
    """Open the ``number``-th (1-based) filtered endpoint."""
    if state.current_screen != Screen.ENDPOINT_LIST:
        return state
    if not 1 <= number <= min(QUICK_SELECT_COUNT, len(state.filtered)):
        return state
    return select_endpoint(_update(state, selected=number - 1), endpoints)


# builder


def visible_panes(endpoint: Endpoint) -> list[Pane]:
    """Panes shown for ``endpoint``; Path is shown when nothing else is."""
    panes = []
    if endpoint.path_params:
        panes.append(Pane.PATH)
    if endpoint.query_params:
        panes.append(Pane.QUERY)
    if endpoint.body is not None:
        panes.append(Pane.BODY)
    return panes or [Pane.PATH]


def _first_visible_pane(endpoint: Endpoint, preferred: Pane) -> Pane:
    panes = visible_panes(endpoint)
    return preferred if preferred in panes else panes[0]


def pane_rows(state: SessionState, pane: Pane | None = None) -> list[str]:
    """Field names listed in ``pane`` (the focused pane by default)."""
    endpoint = state.active_endpoint
    if endpoint is None:
        return []
    pane = pane or state.pane
    if pane == Pane.PATH:
        return [p.name for p in endpoint.path_params]
    if pane == Pane.QUERY:
        return [p.name for p in endpoint.query_params]
    if endpoint.body is None or not endpoint.body.supported:
        return []
    return [f.name for f in endpoint.body.fields]


def selected_field(state: SessionState) -> str | None:
    rows = pane_rows(state)
    if 0 <= state.row < len(rows):
        return rows[state.row]
    return None


def cycle_pane(state: SessionState) -> SessionState:
    """Focus the next visible pane in Path -> Query -> Body order."""
    if not state.in_builder or state.active_endpoint is None:
        return state
    panes = visible_panes(state.active_endpoint)
    position = PANE_ORDER.index(state.pane)
    for step in range(1, len(PANE_ORDER) + 1):
        candidate = PANE_ORDER[(position + step) % len(PANE_ORDER)]
        if candidate in panes:
            return _update(state, pane=candidate, row=0)
    return state


def move_row(state: SessionState, delta: int) -> SessionState:
    if not state.in_builder:
        return state
    rows = pane_rows(state)
    if not rows:
        return state
    return _update(state, row=max(0, min(state.row + delta, len(rows) - 1)))


def begin_edit(state: SessionState) -> SessionState:
    """Open the edit modal on the selected row, pre-filled with its value.

    Examples and defaults are hints only and never pre-fill the buffer.
    """
    if not state.in_builder:
        return state
    field = selected_field(state)
    if field is None:
        return state
    current = state.values_for(state.pane).get(field, "")
    return _update(state, edit=EditTarget(pane=state.pane, field=field, buffer=current))


def edit_type(state: SessionState, text: str) -> SessionState:
    if state.edit is None:
        return state
    return _update(state, edit=state.edit.model_copy(update={"buffer": state.edit.buffer + text}))


def edit_backspace(state: SessionState) -> SessionState:
    if state.edit is None or not state.edit.buffer:
        return state
    return _update(state, edit=state.edit.model_copy(update={"buffer": state.edit.buffer[:-1]}))


def confirm_edit(state: SessionState) -> SessionState:
    """Store the trimmed buffer, even when it is empty."""
    if state.edit is None:
        return state
    target = state.edit
    values = {**state.values_for(target.pane), target.field: target.buffer.strip()}
    return _update(state, edit=None, **{_values_attr(target.pane): values})


def cancel_edit(state: SessionState) -> SessionState:
    if state.edit is None:
        return state
    return _update(state, edit=None)


def reset_field(state: SessionState) -> SessionState:
    """Remove the selected row's value; on the Body pane also drop the raw override."""
    if not state.in_builder:
        return state
    field = selected_field(state)
    if field is None:
        return state
    values = {k: v for k, v in state.values_for(state.pane).items() if k != field}
    changes = {_values_attr(state.pane): values}
    if state.pane == Pane.BODY:
        changes["raw_body"] = ""
    return _update(state, **changes)


def set_raw_body(state: SessionState, raw_body: str) -> SessionState:
    return _update(state, raw_body=raw_body)


def _values_attr(pane: Pane) -> str:
    return f"{pane.value}_values"


# response


def show_response(state: SessionState, request: RequestSpec, result: Result) -> SessionState:
    return _update(
        state,
        screen=Screen.RESPONSE,
        last_request=request,
        last_result=result,
        scroll=0,
        error="",
    )


def update_result(state: SessionState, result: Result) -> SessionState:
    return _update(state, last_result=result, error="")


def scroll_response(state: SessionState, delta: int) -> SessionState:
    """Scroll the body, keeping at least its last line on screen."""
    if state.current_screen != Screen.RESPONSE:
        return state
    lines = len(state.last_result.body.splitlines()) if state.last_result is not None else 0
    return _update(state, scroll=max(0, min(state.scroll + delta, lines - 1)))


def return_to_list(state: SessionState) -> SessionState:
    """Enter on the response screen: jump straight back to the list."""
    if state.current_screen != Screen.RESPONSE:
        return state
    return _update(state, screen=Screen.ENDPOINT_LIST, error="")


def go_back(state: SessionState) -> SessionState:
    """Esc: close the topmost modal, or step back one screen."""
    if state.auth is not None:
        return close_auth(state)
    if state.edit is not None:
        return cancel_edit(state)
    if state.screen == Screen.RESPONSE:
        return _update(state, screen=Screen.BUILDER, error="")
    if state.screen == Screen.BUILDER:
        return _update(state, screen=Screen.ENDPOINT_LIST, error="")
    return _update(state, error="")


# auth modal


def open_auth(state: SessionState, scheme_names: Sequence[str], tokens: Mapping[str, str]) -> SessionState:
    """Open the auth overlay; a no-op if it is already open."""
    if state.auth is not None:
        return state
    if not scheme_names:
        return set_error(state, NO_SCHEMES_MESSAGE)
    schemes = sorted(scheme_names)
    modal = AuthModal(schemes=schemes, token=tokens.get(schemes[0], ""))
    return _update(state, auth=modal)


def close_auth(state: SessionState) -> SessionState:
    if state.auth is None:
        return state
    return _update(state, auth=None)


def move_auth_selection(state: SessionState, delta: int, tokens: Mapping[str, str]) -> SessionState:
    modal = state.auth
    if modal is None or modal.focus is not None or not modal.schemes:
        return state
    selected = max(0, min(modal.selected + delta, len(modal.schemes) - 1))
    name = modal.schemes[selected]
    return _update(
        state,
        auth=modal.model_copy(
            update={
                "selected": selected,
                "token": tokens.get(name, ""),
                "username": "",
                "password": "",
                "scope": "",
                "error": "",
            }
        ),
    )


def start_auth_edit(state: SessionState, scheme: SecurityScheme | None) -> SessionState:
    """Focus the first input of the selected scheme's form."""
    modal = state.auth
    if modal is None or not modal.schemes:
        return state
    focus = AuthField.USERNAME if scheme is not None and scheme.is_password_flow else AuthField.TOKEN
    return _update(state, auth=modal.model_copy(update={"focus": focus, "error": ""}))


def auth_next_field(state: SessionState, scheme: SecurityScheme | None) -> SessionState:
    """Tab: cycle username -> password -> scope; token-only forms stay put."""
    modal = state.auth
    if modal is None or modal.focus is None:
        return state
    if scheme is None or not scheme.is_password_flow:
        focus = AuthField.TOKEN
    elif modal.focus in PASSWORD_FLOW_FIELDS:
        position = PASSWORD_FLOW_FIELDS.index(modal.focus)
        focus = PASSWORD_FLOW_FIELDS[(position + 1) % len(PASSWORD_FLOW_FIELDS)]
    else:
        focus = AuthField.USERNAME
    return _update(state, auth=modal.model_copy(update={"focus": focus}))


def auth_type(state: SessionState, text: str) -> SessionState:
    modal = state.auth
    if modal is None or modal.focus is None:
        return state
    attr = modal.focus.value
    return _update(state, auth=modal.model_copy(update={attr: getattr(modal, attr) + text}))


def auth_backspace(state: SessionState) -> SessionState:
    modal = state.auth
    if modal is None or modal.focus is None:
        return state
    attr = modal.focus.value
    return _update(state, auth=modal.model_copy(update={attr: getattr(modal, attr)[:-1]}))


def auth_cleared(state: SessionState) -> SessionState:
    """Reset the form after the selected scheme's credential was dropped."""
    modal = state.auth
    if modal is None:
        return state
    return _update(
        state,
        auth=modal.model_copy(
            update={"focus": None, "token": "", "username": "", "password": "", "scope": "", "error": ""}
        ),
    )


def auth_saved(state: SessionState, token: str | None = None) -> SessionState:
    """Leave the form after a successful save, optionally showing ``token``."""
    modal = state.auth
    if modal is None:
        return state
    changes = {"focus": None, "error": ""}
    if token is not None:
        changes["token"] = token
    return _update(state, auth=modal.model_copy(update=changes))


def auth_failed(state: SessionState, message: str) -> SessionState:
    modal = state.auth
    if modal is None:
        return state
    return _update(state, auth=modal.model_copy(update={"error": message}))
