import contextvars
from contextlib import contextmanager
import uuid

generation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("generation_id", default=None)
step_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("step", default=None)
provider_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("provider", default=None)


def new_generation_id() -> str:
    return uuid.uuid4().hex[:12]


def set_generation_id(generation_id: str) -> contextvars.Token:
    """Store the current generation ID in a context variable."""
    return generation_id_var.set(generation_id)


def reset_generation_id(token: contextvars.Token) -> None:
    """Reset the generation ID context variable to a previous state."""
    generation_id_var.reset(token)


def get_generation_id() -> str | None:
    """Retrieve the current generation ID from the context."""
    return generation_id_var.get()


def get_step() -> str | None:
    """Retrieve the current pipeline step for logging."""
    return step_var.get()


def get_provider() -> str | None:
    """Retrieve the provider serving the current generation."""
    return provider_var.get()


@contextmanager
def log_context(
    generation_id: uuid.UUID | str | None = None,
    step: str | None = None,
    provider: str | None = None,
):
    """Temporarily scope generation/step/provider context for structured logs."""
    tokens: list[tuple[contextvars.ContextVar[str | None], contextvars.Token]] = []
    if generation_id is not None:
        tokens.append((generation_id_var, generation_id_var.set(str(generation_id))))
    if step is not None:
        tokens.append((step_var, step_var.set(step)))
    if provider is not None:
        tokens.append((provider_var, provider_var.set(provider)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
