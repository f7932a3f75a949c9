from typing import Any, Protocol


class ThingsGateway(Protocol):
    def open_url(self, url: str) -> None:
        ...

    def evaluate(self, target: str) -> Any:
        ...
