class DomainError(Exception):
    def __init__(
        self,
        detail: str,
        title: str = "Domain Error",
        type: str | None = None,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.title = title
        self.type = type
        self.errors = errors
