from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """
    Transaction boundary shared by the repositories of one webhook delivery

    Each use case commits its own writes; resolution, subscription state and
    credit grants therefore succeed or fail independently.
    """

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
