from __future__ import annotations


class CVMatchError(RuntimeError):
    def __init__(self, message: str, *, code: str = "analysis_error"):
        super().__init__(message)
        self.code = code


class InputValidationError(CVMatchError):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message, code="invalid_input")
        self.field = field


class ExtractionFailure(CVMatchError):
    def __init__(self, message: str, *, code: str = "extraction_failed"):
        super().__init__(message, code=code)


class EmbeddingFailure(CVMatchError):
    def __init__(self, message: str, *, code: str = "embedding_failed"):
        super().__init__(message, code=code)


class CompletenessViolation(CVMatchError):
    def __init__(self, problems: list[str], *, warnings: list[str] | None = None):
        super().__init__(
            "Analysis is incomplete: " + "; ".join(problems),
            code="incomplete_analysis",
        )
        self.problems = list(problems)
        self.warnings = list(warnings or [])


class AblationSimulationFailure(CVMatchError):
    def __init__(self, message: str, *, keyword: str, category: str):
        super().__init__(message, code="ablation_failed")
        self.keyword = keyword
        self.category = category


class DimensionMismatch(CVMatchError, ValueError):
    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimensions differ: {left} != {right}", code="dimension_mismatch")
        self.left = left
        self.right = right


class LLMError(CVMatchError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message, code=code)
