from abc import ABC, abstractmethod

from pydantic import BaseModel


class ConfirmRequest(BaseModel):
    """
    A yes/no question put to the operator before a destructive action.
    """
    title: str
    body: str
    ok_label: str = "OK"
    cancel_label: str = "Cancel"
    danger: bool = False


class ConfirmInterface(ABC):
    """Blocking confirmation collaborator used before destructive actions and the first AI call."""

    @abstractmethod
    async def confirm(self, request: ConfirmRequest) -> bool:
        """
        Ask the operator. Returns True only when the action was approved.
        """
        pass
