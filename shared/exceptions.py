"""RFC 9457 Problem Details exception hierarchy.

All API errors extend ProblemDetailError and are converted to
application/problem+json responses by the exception handler middleware.
"""


class ProblemDetailError(Exception):
    def __init__(
        self,
        type_uri: str,
        title: str,
        status: int,
        detail: str,
        violations: list[dict] | None = None,
    ):
        self.type_uri = type_uri
        self.title = title
        self.status = status
        self.detail = detail
        self.violations = violations
        super().__init__(detail)


class ValidationError(ProblemDetailError):
    def __init__(self, violations: list[dict]):
        super().__init__(
            type_uri="https://caffscore.dev/problems/validation-error",
            title="Validation Error",
            status=422,
            detail=f"Request body contains {len(violations)} validation error(s)",
            violations=violations,
        )


class InvalidCurveWindowError(ProblemDetailError):
    def __init__(self, hours_ahead: float, interval_minutes: int):
        super().__init__(
            type_uri="https://caffscore.dev/problems/invalid-curve-window",
            title="Invalid Curve Window",
            status=400,
            detail=(
                f"A {interval_minutes}-minute interval does not fit in a "
                f"{hours_ahead}-hour projection window."
            ),
        )
