"""Read-only projection of the session into prompt_toolkit formatted text.

Nothing here mutates the session; the application re-renders after every
key event.
"""

import re

from prompt_toolkit.formatted_text import StyleAndTextTuples

from xhark.parser.base import Endpoint, Param
from xhark.session.controller import Session
from xhark.session.state import QUICK_SELECT_COUNT, AuthField, Pane, Screen, SessionState, visible_panes

PATH_PARAM_RE = re.compile(r"(\{[^}]+\})")

PANE_TITLES = {Pane.PATH: "Path Params", Pane.QUERY: "Query Params", Pane.BODY: "Body"}

FOOTERS = {
    Screen.ENDPOINT_LIST: "type: filter   1-5: quick select   enter: select   esc: back   A: auth   ctrl+c: quit",
    Screen.BUILDER: "tab: switch pane   enter: edit   d: reset param   ctrl+r: run   A: auth   esc: back   q: quit",
    Screen.RESPONSE: "up/down: scroll   r: rerun   enter: back to endpoints   A: auth   esc: back   q: quit",
    Screen.AUTH_MODAL: "auth: enter=edit/save   tab=next field   ctrl+d=clear   esc=close",
}
BODY_FOOTER = "tab: switch pane   enter: edit json ($EDITOR)   e: edit field   d: reset param   ctrl+r: run   A: auth   esc: back"
EDIT_FOOTER = "enter: ok   esc: cancel"


def method_style(method: str) -> str:
    return f"class:method.{method.lower()}"


def status_style(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "class:status.ok"
    if 400 <= status_code < 500:
        return "class:status.client-error"
    if status_code >= 500:
        return "class:status.server-error"
    return ""


def render_header() -> StyleAndTextTuples:
    return [("class:title", "xhark"), ("", "  -  OpenAPI TUI")]


def render_footer(state: SessionState) -> StyleAndTextTuples:
    if state.error:
        return [("class:error", state.error)]
    if state.edit is not None:
        return [("class:footer", EDIT_FOOTER)]
    screen = state.current_screen
    if screen == Screen.BUILDER and state.pane == Pane.BODY and state.active_endpoint is not None:
        if state.active_endpoint.body is not None:
            return [("class:footer", BODY_FOOTER)]
    return [("class:footer", FOOTERS[screen])]


def render_main(session: Session) -> StyleAndTextTuples:
    state = session.state
    if state.auth is not None:
        return render_auth(session)
    if state.screen == Screen.BUILDER:
        return render_builder(session)
    if state.screen == Screen.RESPONSE:
        return render_response(state)
    return render_endpoints(session)


def _endpoint_line(endpoint: Endpoint) -> StyleAndTextTuples:
    fragments = [(method_style(endpoint.method), endpoint.method.ljust(6)), ("", "  ")]
    for part in PATH_PARAM_RE.split(endpoint.path):
        if part:
            fragments.append(("class:path-param" if PATH_PARAM_RE.fullmatch(part) else "", part))
    if endpoint.label:
        fragments.append(("", " - " + endpoint.label))
    return fragments


def render_endpoints(session: Session) -> StyleAndTextTuples:
    state = session.state
    out: StyleAndTextTuples = [("class:pane-title", "Filter: "), ("", state.filter_text), ("", "\n\n")]
    out.append(("class:pane-title", f"Endpoints ({len(state.filtered)}/{len(session.catalog)})\n"))
    if not state.filtered:
        out.append(("class:hint", "(no matches)\n"))
    for position, index in enumerate(state.filtered):
        style = "class:selected" if position == state.selected else ""
        prefix = f"{position + 1} " if position < QUICK_SELECT_COUNT else "  "
        if position == state.selected:
            out.append(("[SetCursorPosition]", ""))
        out.append((style, prefix))
        out.extend((f"{style} {s}".strip(), t) for s, t in _endpoint_line(session.catalog[index]))
        out.append(("", "\n"))
    return out


def _param_hint(param: Param) -> str:
    parts = []
    if param.enum:
        parts.append("|".join(param.enum))
    if param.default:
        parts.append("default: " + param.default)
    if param.description:
        parts.append(param.description)
    return ", ".join(parts) or param.example


def _field_line(name: str, required: bool, value: str | None, hint: str, selected: bool) -> StyleAndTextTuples:
    style = "class:selected" if selected else ""
    marker = "*" if required else ""
    line: StyleAndTextTuples = [("[SetCursorPosition]", "")] if selected else []
    line.append((style, f"{marker}{name} = "))
    if value:
        line.append((f"{style} class:value".strip(), value))
    elif hint:
        line.append((f"{style} class:hint".strip(), hint))
    line.append(("", "\n"))
    return line


def render_builder(session: Session) -> StyleAndTextTuples:
    state = session.state
    endpoint = state.active_endpoint
    if endpoint is None:
        return []

    out: StyleAndTextTuples = [("class:pane-title", "Selected endpoint\n")]
    out.extend(_endpoint_line(endpoint))
    out.append(("", "\n"))
    if state.raw_body.strip():
        out.append(("class:info", "body: raw json set\n"))
    if endpoint.security:
        if session.auth_headers() is not None:
            out.append(("class:info", "auth: set\n"))
        else:
            out.append(("class:warning", "auth: required (press A)\n"))

    for pane in visible_panes(endpoint):
        focused = pane == state.pane and state.edit is None
        out.append(("", "\n"))
        out.append(("class:pane-title.focused" if focused else "class:pane-title", PANE_TITLES[pane] + "\n"))
        out.extend(_render_pane(state, endpoint, pane, focused))

    if state.edit is not None:
        out.append(("", "\n"))
        out.append(("class:pane-title.focused", f" {state.edit.field} (enter=ok, esc=cancel) \n"))
        out.append(("class:edit", f"> {state.edit.buffer}"))
        out.append(("[SetCursorPosition]", ""))
        out.append(("", "\n"))
    return out


def _render_pane(state: SessionState, endpoint: Endpoint, pane: Pane, focused: bool) -> StyleAndTextTuples:
    out: StyleAndTextTuples = []
    values = state.values_for(pane)

    if pane == Pane.BODY:
        if endpoint.body is None:
            return [("class:hint", "(no body)\n")]
        if not endpoint.body.supported:
            return [("class:hint", "(body schema unsupported; enter to edit raw json)\n")]
        if not endpoint.body.fields:
            return [("class:hint", "(empty schema)\n")]
        for row, f in enumerate(endpoint.body.fields):
            hint = f.example or f.default
            out.extend(_field_line(f.name, f.required, values.get(f.name), hint, focused and row == state.row))
        return out

    params = endpoint.path_params if pane == Pane.PATH else endpoint.query_params
    if not params:
        return [("class:hint", "(none)\n")]
    for row, p in enumerate(params):
        hint = p.example if pane == Pane.PATH else _param_hint(p)
        out.extend(_field_line(p.name, p.required, values.get(p.name), hint, focused and row == state.row))
    return out


def render_response(state: SessionState) -> StyleAndTextTuples:
    result = state.last_result
    if result is None:
        return [("class:hint", "(no response)")]
    request = state.last_request
    out: StyleAndTextTuples = []
    if request is not None:
        out.append((method_style(request.method), request.method))
        out.append(("", f" {request.url}\n"))
    out.append((status_style(result.status_code), result.status + "\n"))
    out.append(("", f"elapsed: {result.elapsed * 1000:.0f}ms\n"))
    if "content-type" in result.headers:
        out.append(("", f"content-type: {result.headers['content-type']}\n"))
    out.append(("", "\n"))
    lines = result.body.splitlines()
    out.append(("", "\n".join(lines[state.scroll:])))
    return out


def _auth_field(label: str, value: str, active: bool) -> StyleAndTextTuples:
    return [("class:selected" if active else "", ("> " if active else "  ") + label), ("", value + "\n")]


def render_auth(session: Session) -> StyleAndTextTuples:
    modal = session.state.auth
    if modal is None:
        return []

    out: StyleAndTextTuples = [("class:pane-title", "Authentication\n\n"), ("class:pane-title", "Schemes\n")]
    for i, name in enumerate(modal.schemes):
        scheme = session.catalog.schemes.get(name)
        status = "[set]" if name in session.credentials else "[unset]"
        desc = f" - {scheme.description}" if scheme is not None and scheme.description else ""
        style = "class:selected" if i == modal.selected else ""
        out.append((style, f"{status} {name}{desc}\n"))

    out.append(("", "\n"))
    out.append(("class:pane-title", "Details\n"))
    name = modal.active_scheme
    scheme = session.catalog.schemes.get(name)
    if scheme is None:
        out.append(("", "No security schemes.\n"))
        return out

    if modal.error:
        out.append(("class:error", f"error: {modal.error}\n\n"))
    out.append(("", f"scheme: {name}\ntype:   {scheme.scheme_type}\n\n"))

    if scheme.is_bearer:
        out.append(("", "Bearer token:\n"))
        out.extend(_auth_field("", modal.token, modal.focus == AuthField.TOKEN))
        out.append(("class:hint", "\nenter: save   ctrl+d: clear   esc: close\n"))
        return out

    if scheme.scheme_type == "oauth2":
        if not scheme.is_password_flow:
            out.append(("", "OAuth2 scheme detected but no password-flow tokenUrl found in the spec.\n"))
            out.append(("", "Only the OAuth2 password flow (flows.password.tokenUrl) is supported.\n"))
            return out
        out.append(("", f"OAuth2 password flow\ntokenUrl: {scheme.token_url}\n\n"))
        out.extend(_auth_field("username: ", modal.username, modal.focus == AuthField.USERNAME))
        out.extend(_auth_field("password: ", "*" * len(modal.password), modal.focus == AuthField.PASSWORD))
        out.extend(_auth_field("scope:    ", modal.scope, modal.focus == AuthField.SCOPE))
        out.append(("class:hint", "\ntab: next field   enter: fetch token   ctrl+d: clear   esc: close\n"))
        return out

    out.append(("class:hint", "(unsupported scheme)\n"))
    return out
