class AIFeedbackError(RuntimeError):
    def __init__(self, message: str, *, code: str = "ai_unavailable"):
        super().__init__(message)
        self.code = code
