import contextvars
import uuid


_refresh_context: contextvars.ContextVar[dict] = contextvars.ContextVar(
    "refresh_context",
    default={},
)


def set_refresh_context(**kwargs: str) -> None:
    current = _refresh_context.get({}).copy()
    current.update({k: v for k, v in kwargs.items() if v})
    _refresh_context.set(current)


def clear_refresh_context() -> None:
    _refresh_context.set({})


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


class RefreshContextFilter:
    def filter(self, record) -> bool:  # noqa: ANN001
        context = _refresh_context.get({})
        record.run_id = context.get("run_id", getattr(record, "run_id", "-"))
        record.package_id = context.get("package_id", getattr(record, "package_id", "-"))
        return True
