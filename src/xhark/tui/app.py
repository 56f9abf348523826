"""prompt_toolkit front-end: key bindings dispatching into the session."""

import logging

from prompt_toolkit.application import Application, run_in_terminal
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style

from xhark.session import editor
from xhark.session.controller import Session
from xhark.session.editor import EditorOutcome
from xhark.session.state import QUICK_SELECT_COUNT, Pane, Screen

from .render import render_footer, render_header, render_main

logger = logging.getLogger(__name__)

STYLE = Style.from_dict(
    {
        "title": "bold ansigreen",
        "footer": "ansigray",
        "error": "bold ansired",
        "info": "ansicyan",
        "warning": "ansiyellow",
        "hint": "ansibrightblack",
        "value": "ansigreen",
        "selected": "reverse",
        "pane-title": "bold",
        "pane-title.focused": "bold ansigreen",
        "path-param": "ansicyan",
        "edit": "bold",
        "method.get": "ansiblue",
        "method.post": "ansigreen",
        "method.put": "ansiyellow",
        "method.patch": "ansicyan",
        "method.delete": "ansired",
        "status.ok": "ansigreen",
        "status.client-error": "ansiyellow",
        "status.server-error": "ansired",
    }
)


def _printable(data: str) -> bool:
    return len(data) == 1 and data.isprintable()


def build_key_bindings(session: Session) -> KeyBindings:
    kb = KeyBindings()

    on_list = Condition(lambda: session.state.current_screen == Screen.ENDPOINT_LIST)
    in_builder = Condition(lambda: session.state.in_builder)
    on_body_pane = Condition(lambda: session.state.pane == Pane.BODY)
    editing = Condition(lambda: session.state.edit is not None and session.state.auth is None)
    on_response = Condition(lambda: session.state.current_screen == Screen.RESPONSE)
    auth_open = Condition(lambda: session.state.auth is not None)
    auth_typing = Condition(lambda: session.state.auth is not None and session.state.auth.focus is not None)
    auth_list = auth_open & ~auth_typing
    typing = editing | auth_typing

    @kb.add("c-c")
    @kb.add("q", filter=in_builder | on_response)
    def _quit(event):
        event.app.exit()

    @kb.add("escape", eager=True)
    def _back(event):
        session.go_back()

    @kb.add("A", filter=~typing & ~auth_open)
    def _open_auth(event):
        session.open_auth()

    # endpoint list

    @kb.add(Keys.Any, filter=on_list)
    def _filter_type(event):
        if _printable(event.data):
            session.type_filter(event.data)

    @kb.add("backspace", filter=on_list)
    def _filter_backspace(event):
        session.backspace_filter()

    @kb.add("up", filter=on_list)
    def _list_up(event):
        session.move_selection(-1)

    @kb.add("down", filter=on_list)
    def _list_down(event):
        session.move_selection(1)

    @kb.add("enter", filter=on_list)
    def _select(event):
        session.select_endpoint()

    for number in range(1, QUICK_SELECT_COUNT + 1):
        kb.add(str(number), filter=on_list)(lambda event, n=number: session.quick_select(n))

    # builder

    @kb.add("tab", filter=in_builder)
    def _cycle(event):
        session.cycle_pane()

    @kb.add("up", filter=in_builder)
    def _row_up(event):
        session.move_row(-1)

    @kb.add("down", filter=in_builder)
    def _row_down(event):
        session.move_row(1)

    @kb.add("enter", filter=in_builder & ~on_body_pane)
    @kb.add("e", filter=in_builder & on_body_pane)
    def _begin_edit(event):
        session.begin_edit()

    @kb.add("enter", filter=in_builder & on_body_pane)
    async def _edit_body(event):
        request = session.begin_body_edit()
        if request is None:
            return
        outcome = EditorOutcome(error="editor did not run")
        try:
            outcome = await run_in_terminal(lambda: editor.run_editor(request))
        finally:
            session.finish_body_edit(request, outcome)
            event.app.invalidate()

    @kb.add("d", filter=in_builder)
    def _reset(event):
        session.reset_field()

    @kb.add("c-r", filter=in_builder)
    def _execute(event):
        session.execute()

    # edit modal

    @kb.add(Keys.Any, filter=editing)
    def _edit_type(event):
        if _printable(event.data):
            session.edit_type(event.data)

    @kb.add("backspace", filter=editing)
    def _edit_backspace(event):
        session.edit_backspace()

    @kb.add("enter", filter=editing)
    def _confirm(event):
        session.confirm_edit()

    # response

    @kb.add("up", filter=on_response)
    def _scroll_up(event):
        session.scroll_response(-1)

    @kb.add("down", filter=on_response)
    def _scroll_down(event):
        session.scroll_response(1)

    @kb.add("r", filter=on_response)
    def _rerun(event):
        session.rerun()

    @kb.add("enter", filter=on_response)
    def _to_list(event):
        session.return_to_list()

    # auth modal

    @kb.add("up", filter=auth_list)
    def _auth_up(event):
        session.move_auth_selection(-1)

    @kb.add("down", filter=auth_list)
    def _auth_down(event):
        session.move_auth_selection(1)

    @kb.add("enter", filter=auth_list)
    def _auth_edit(event):
        session.start_auth_edit()

    @kb.add("enter", filter=auth_typing)
    def _auth_submit(event):
        session.submit_auth()

    @kb.add("tab", filter=auth_typing)
    def _auth_next(event):
        session.auth_next_field()

    @kb.add("c-d", filter=auth_open)
    def _auth_clear(event):
        session.clear_auth()

    @kb.add(Keys.Any, filter=auth_typing)
    def _auth_type(event):
        if _printable(event.data):
            session.auth_type(event.data)

    @kb.add("backspace", filter=auth_typing)
    def _auth_backspace(event):
        session.auth_backspace()

    return kb


def build_application(session: Session) -> Application:
    layout = Layout(
        HSplit(
            [
                Window(FormattedTextControl(render_header), height=1),
                Window(FormattedTextControl(lambda: render_main(session)), wrap_lines=False),
                Window(FormattedTextControl(lambda: render_footer(session.state)), height=1),
            ]
        )
    )
    return Application(
        layout=layout,
        key_bindings=build_key_bindings(session),
        style=STYLE,
        full_screen=True,
    )


def run_app(session: Session) -> None:
    logger.debug("starting TUI with %d endpoints", len(session.catalog))
    build_application(session).run()
