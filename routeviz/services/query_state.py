# routeviz/services/query_state.py
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode

from routeviz.core.events import EventChannel
from routeviz.core.logger import logger
from routeviz.models.routing import ExternalState

INT_KEYS = ("fromId", "toId")


def _coerce(key: str, value: Any) -> Any:
    if key not in INT_KEYS:
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed {key}={value!r} in query state")
        return -1


class QueryStateStore:
    """
    Key-value state shaped like a URL query string.

    - `set` is an outbound write from the application and notifies nobody.
    - `apply` / `apply_query_string` is an inbound change (page reload, shared
      link) and publishes the resulting ExternalState on `changed`.
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None) -> None:
        self._defaults: Dict[str, Any] = {
            key: _coerce(key, value) for key, value in (defaults or {}).items()
        }
        self._values: Dict[str, Any] = dict(self._defaults)
        self.changed: EventChannel[ExternalState] = EventChannel("query.changed")

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> None:
        updates = key if isinstance(key, Mapping) else {key: value}
        for k, v in updates.items():
            self._values[k] = _coerce(k, v)

    def apply(self, values: Mapping[str, Any]) -> ExternalState:
        """
        Replace the whole state from an external source and notify listeners.
        Keys missing from `values` fall back to their defaults. If a listener
        rejects the new state, the previous values are put back and the error
        propagates.
        """
        previous = self._values
        self._values = dict(self._defaults)
        self.set(values)
        state = self.state()
        logger.info(f"Query state changed externally: {self.to_query_string()}")
        try:
            self.changed.publish(state)
        except Exception as exc:
            self._values = previous
            logger.warning(f"Query state change rejected, keeping {self.to_query_string()}: {exc}")
            raise
        return state

    def apply_query_string(self, query: str) -> ExternalState:
        return self.apply(dict(parse_qsl(query.lstrip("?#"), keep_blank_values=False)))

    def to_query_string(self) -> str:
        return urlencode({k: v for k, v in self._values.items() if v is not None})

    def state(self) -> ExternalState:
        return ExternalState(
            graph=self._values.get("graph", ""),
            from_id=self._values.get("fromId", -1),
            to_id=self._values.get("toId", -1),
            finder=self._values.get("finder"),
        )
