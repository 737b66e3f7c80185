from services.content_review.confirm.ConfirmInterface import ConfirmInterface, ConfirmRequest


class ConfirmStatic(ConfirmInterface):
    """Answers every confirmation with a fixed decision.

    Used by the HTTP layer (answer taken from the request's "confirm" flag)
    and by the commit runner (answer taken from --yes). Every question asked
    is kept in asked for inspection.
    """

    def __init__(self, answer: bool):
        self.answer = answer
        self.asked: list[ConfirmRequest] = []

    async def confirm(self, request: ConfirmRequest) -> bool:
        self.asked.append(request)
        return self.answer
