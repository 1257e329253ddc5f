from pydantic import BaseModel


class NoteCreate(BaseModel):
    # title presence is checked by the handler so the error names the field
    title: str | None = None
    content: str = ""
    pinned: bool = False


class NoteUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    pinned: bool | None = None

    def supplied(self) -> dict:
        return self.model_dump(include=self.model_fields_set, exclude_none=True)


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    pinned: bool
    created: int
    lastModified: int
