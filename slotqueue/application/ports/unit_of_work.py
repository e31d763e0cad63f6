from typing import ContextManager, Protocol


class UnitOfWork(Protocol):
    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def savepoint(self) -> ContextManager[None]:
        """Nested scope whose writes are discarded if the block raises."""
        ...
