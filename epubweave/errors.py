from __future__ import annotations


class EpubReadError(ValueError):
    pass


class ArchiveOpenFailure(EpubReadError):
    def __init__(self, detail: str = "") -> None:
        message = "Couldn't extract EPUB archive"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MissingEntry(EpubReadError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No entry on path: {path}")


class MalformedXml(EpubReadError):
    def __init__(self, context: str, detail: str = "") -> None:
        self.context = context
        message = f"Unable to parse XML document: {context}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MissingElement(EpubReadError):
    def __init__(self, name: str, context: str = "") -> None:
        self.name = name
        message = f"Unable to find element: {name}"
        if context:
            message = f"{message} in {context}"
        super().__init__(message)


class MissingAttribute(EpubReadError):
    def __init__(self, name: str, context: str = "") -> None:
        self.name = name
        message = f"Missing attribute: {name}"
        if context:
            message = f"{message} on {context}"
        super().__init__(message)


class DanglingReference(EpubReadError):
    def __init__(self, idref: str) -> None:
        self.idref = idref
        super().__init__(f"Spine itemref points at unknown manifest id: {idref}")


class ChapterError(EpubReadError):
    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        message = f"Failed to convert chapter: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ConversionError(ValueError):
    pass


class ConfigError(ValueError):
    pass
