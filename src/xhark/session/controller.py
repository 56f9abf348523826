"""Session controller: runs the effectful operations around the pure state.

Every recoverable error (ValidationError, TransportError, AuthError, editor
failures) ends up as a message on the state. No error changes the screen.
"""

import logging
from collections.abc import Callable

from xhark.catalog import Catalog
from xhark.client.executor import Result, execute
from xhark.client.request import RequestSpec, build_request
from xhark.errors import AuthError, TransportError, ValidationError
from xhark.parser.base import SecurityScheme

from . import editor
from . import state as st
from .credentials import CredentialStore
from .editor import BodyEditRequest, EditorOutcome

logger = logging.getLogger(__name__)

NO_BASE_URL_MESSAGE = (
    "base URL unknown (spec missing servers); set XHARK_BASE_URL, "
    "or load spec from an http(s) URL"
)
UNSUPPORTED_SCHEME_MESSAGE = "unsupported security scheme"

Executor = Callable[[RequestSpec, float], Result]


class Session:
    """One interactive session over a loaded catalog."""

    def __init__(
        self,
        catalog: Catalog,
        credentials: CredentialStore | None = None,
        executor: Executor = execute,
        request_timeout: float = 20.0,
        editor_command: str = "",
    ):
        self.catalog = catalog
        self.credentials = credentials or CredentialStore(base_url=catalog.base_url)
        self.executor = executor
        self.request_timeout = request_timeout
        self.editor_command = editor_command
        self.state = st.initial_state(catalog.endpoints)
        self._pending_edit: BodyEditRequest | None = None

    @property
    def base_url(self) -> str:
        return self.catalog.base_url

    # endpoint list

    def type_filter(self, text: str) -> None:
        self.state = st.type_filter(self.state, self.catalog.endpoints, text)

    def backspace_filter(self) -> None:
        self.state = st.backspace_filter(self.state, self.catalog.endpoints)

    def move_selection(self, delta: int) -> None:
        self.state = st.move_selection(self.state, delta)

    def select_endpoint(self) -> None:
        self.state = st.select_endpoint(self.state, self.catalog.endpoints)

    def quick_select(self, number: int) -> None:
        self.state = st.quick_select(self.state, self.catalog.endpoints, number)

    # builder

    def cycle_pane(self) -> None:
        self.state = st.cycle_pane(self.state)

    def move_row(self, delta: int) -> None:
        self.state = st.move_row(self.state, delta)

    def begin_edit(self) -> None:
        self.state = st.begin_edit(self.state)

    def edit_type(self, text: str) -> None:
        self.state = st.edit_type(self.state, text)

    def edit_backspace(self) -> None:
        self.state = st.edit_backspace(self.state)

    def confirm_edit(self) -> None:
        self.state = st.confirm_edit(self.state)

    def reset_field(self) -> None:
        self.state = st.reset_field(self.state)

    def go_back(self) -> None:
        self.state = st.go_back(self.state)

    def auth_headers(self) -> dict[str, str] | None:
        endpoint = self.state.active_endpoint
        if endpoint is None:
            return None
        return self.credentials.headers_for(endpoint)

    def execute(self) -> None:
        """Build and send the builder's request; Response on success only."""
        state = self.state
        if not state.in_builder or state.active_endpoint is None:
            return
        if not self.base_url.strip():
            self.state = st.set_error(state, NO_BASE_URL_MESSAGE)
            return

        try:
            request = build_request(
                self.base_url,
                state.active_endpoint,
                state.path_values,
                state.query_values,
                state.body_values,
                state.raw_body,
            )
            request = request.with_headers(self.credentials.headers_for(state.active_endpoint))
            result = self.executor(request, self.request_timeout)
        except (ValidationError, TransportError) as e:
            logger.info("execute failed: %s", e)
            self.state = st.set_error(state, str(e))
            return

        self.state = st.show_response(state, request, result)

    # response

    def rerun(self) -> None:
        """Send the stored request again, exactly as it was built."""
        state = self.state
        if state.current_screen != st.Screen.RESPONSE or state.last_request is None:
            return
        try:
            result = self.executor(state.last_request, self.request_timeout)
        except TransportError as e:
            logger.info("rerun failed: %s", e)
            self.state = st.set_error(state, str(e))
            return
        self.state = st.update_result(state, result)

    def scroll_response(self, delta: int) -> None:
        self.state = st.scroll_response(self.state, delta)

    def return_to_list(self) -> None:
        self.state = st.return_to_list(self.state)

    # external editor

    def begin_body_edit(self) -> BodyEditRequest | None:
        """Suspend phase: seed a temp file for the body editor.

        Returns None when there is nothing to edit (or seeding failed, in
        which case the error is on the state).
        """
        state = self.state
        if not state.in_builder or state.active_endpoint is None or state.active_endpoint.body is None:
            return None
        try:
            request = editor.prepare(
                state.active_endpoint,
                state.body_values,
                state.raw_body,
                self.editor_command,
            )
        except OSError as e:
            self.state = st.set_error(state, f"cannot create body file: {e}")
            return None
        self._pending_edit = request
        return request

    def finish_body_edit(self, request: BodyEditRequest, outcome: EditorOutcome) -> None:
        """Resume phase: apply the edited body. Repeated calls are no-ops."""
        if request != self._pending_edit:
            return
        self._pending_edit = None

        collected = editor.collect(request, outcome)
        state = self.state
        try:
            raw_body = editor.normalize_body(collected.content)
        except ValueError as e:
            self.state = st.set_error(state, str(e))
            return
        state = st.set_raw_body(state, raw_body)
        self.state = st.set_error(state, collected.error)

    # auth modal

    def _tokens(self) -> dict[str, str]:
        return {
            name: entry.token
            for name in self.catalog.schemes
            if (entry := self.credentials.get(name)) is not None
        }

    def _active_scheme(self) -> SecurityScheme | None:
        if self.state.auth is None:
            return None
        return self.catalog.schemes.get(self.state.auth.active_scheme)

    def open_auth(self) -> None:
        self.state = st.open_auth(self.state, list(self.catalog.schemes), self._tokens())

    def close_auth(self) -> None:
        self.state = st.close_auth(self.state)

    def move_auth_selection(self, delta: int) -> None:
        self.state = st.move_auth_selection(self.state, delta, self._tokens())

    def start_auth_edit(self) -> None:
        self.state = st.start_auth_edit(self.state, self._active_scheme())

    def auth_next_field(self) -> None:
        self.state = st.auth_next_field(self.state, self._active_scheme())

    def auth_type(self, text: str) -> None:
        self.state = st.auth_type(self.state, text)

    def auth_backspace(self) -> None:
        self.state = st.auth_backspace(self.state)

    def clear_auth(self) -> None:
        modal = self.state.auth
        if modal is None or not modal.schemes:
            return
        self.credentials.clear(modal.active_scheme)
        self.state = st.auth_cleared(self.state)

    def submit_auth(self) -> None:
        """Save a manual bearer token or fetch one via the password flow."""
        modal = self.state.auth
        scheme = self._active_scheme()
        if modal is None or scheme is None:
            return

        if scheme.is_bearer:
            self.credentials.set_manual(scheme.name, modal.token)
            self.state = st.auth_saved(self.state)
            return

        if scheme.is_password_flow:
            try:
                entry = self.credentials.fetch_password_grant(scheme, modal.username, modal.password, modal.scope)
            except AuthError as e:
                logger.info("token fetch for %s failed: %s", scheme.name, e)
                self.state = st.auth_failed(self.state, str(e))
                return
            self.state = st.auth_saved(self.state, token=entry.token)
            return

        self.state = st.auth_failed(self.state, UNSUPPORTED_SCHEME_MESSAGE)
