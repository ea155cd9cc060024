"""Tool Session - one tool's interactive lifecycle.

Owns the tool's form and last outcome, and drives the invoker on submit.
"""

import asyncio
from typing import Any, Optional, Union

from shared.errors import FormUnavailableError, UnsupportedSchemaTypeError
from shared.logging import get_logger
from shared.models import (
    CallRequest,
    ControlKind,
    Failure,
    FailureKind,
    FieldState,
    FieldView,
    ToolDescriptor,
    ToolResult,
    ToolView,
    ViewState,
)
from shared.schema import UnknownTypePolicy
from mcp_bridge.invoker import ToolInvoker
from workbench.form import SchemaFormModel

logger = get_logger(__name__)


class ToolSession:
    """
    Interactive session for one discovered tool.

    State machine: idle -> loading -> success | error -> loading ...
    At most one invocation is in flight; a submit while loading is ignored.
    Field edits are allowed in any state and never change the state.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        binary_path: str,
        invoker: ToolInvoker,
        policy: UnknownTypePolicy = UnknownTypePolicy.TEXT,
        generation: int = 0
    ) -> None:
        """
        Initialize a tool session.

        Args:
            descriptor: Tool identity and input schema
            binary_path: Path of the binary the tool was discovered from
            invoker: Invoker used for submissions
            policy: Unknown parameter type policy for the form
            generation: Discovery generation this session belongs to
        """
        self.descriptor = descriptor
        self.binary_path = binary_path
        self.invoker = invoker
        self.generation = generation

        self.state = ViewState.IDLE
        self.result: Optional[ToolResult] = None
        self.failure: Optional[Failure] = None
        self.form_error: Optional[Failure] = None
        self.pending = 0

        self._submission = 0
        self._retired = False

        self.form: Optional[SchemaFormModel]
        try:
            self.form = SchemaFormModel(descriptor, policy)
        except UnsupportedSchemaTypeError as e:
            self.form = None
            self.form_error = Failure.from_error(
                FailureKind.SCHEMA, e, tool_name=descriptor.name
            )
            logger.warning(
                "Tool form unavailable",
                tool=descriptor.name,
                error=str(e)
            )

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def retired(self) -> bool:
        return self._retired

    @property
    def field_state(self) -> FieldState:
        if self.form is None:
            return FieldState({})
        return self.form.field_state

    def retire(self) -> None:
        """Detach from discovery; late results are discarded from now on."""
        self._retired = True

    def set_field(
        self,
        name: str,
        raw_input: Any,
        source_type: Optional[Union[ControlKind, str]] = None
    ) -> FieldState:
        """Edit one field. Never changes the view state."""
        if self.form is None:
            raise FormUnavailableError(self.name)
        return self.form.set_field(name, raw_input, source_type)

    async def submit(self) -> Optional[Union[ToolResult, Failure]]:
        """
        Submit the current field values.

        Returns:
            The invocation outcome, or None if the submit was ignored because a
            call is already in flight, the form is unavailable, or the session
            was retired
        """
        if self._retired:
            logger.info("Submit ignored for retired session", tool=self.name)
            return None
        if self.form is None:
            logger.info("Submit ignored for unavailable form", tool=self.name)
            return None
        if self.state is ViewState.LOADING:
            logger.debug("Submit ignored while loading", tool=self.name)
            return None

        self._submission += 1
        submission = self._submission
        self.state = ViewState.LOADING
        self.result = None
        self.failure = None

        request = CallRequest(
            binary_path=self.binary_path,
            tool_name=self.name,
            arguments=self.form.to_arguments()
        )

        self.pending += 1
        try:
            outcome = await self.invoker.invoke(request)
        except asyncio.CancelledError:
            if submission == self._submission:
                self.state = ViewState.IDLE
            raise
        finally:
            self.pending -= 1

        if self._retired or submission != self._submission:
            logger.info(
                "Discarding stale result",
                tool=self.name,
                generation=self.generation
            )
            return outcome

        if isinstance(outcome, ToolResult):
            self.result = outcome
            self.state = ViewState.SUCCESS
        else:
            self.failure = outcome
            self.state = ViewState.ERROR
        return outcome

    def view(self) -> ToolView:
        """Snapshot for the presentation layer."""
        raw = self.field_state.raw()
        fields = [
            FieldView(
                name=name,
                type=spec.type,
                control=spec.control,
                value=raw.get(name),
                placeholder=spec.description,
            )
            for name, spec in self.descriptor.input_schema.items()
        ]
        return ToolView(
            name=self.name,
            description=self.descriptor.description,
            state=self.state,
            fields=fields,
            result=self.result.items if self.result is not None else None,
            error=self.failure.message if self.failure is not None else None,
            form_error=self.form_error.message if self.form_error is not None else None,
        )
