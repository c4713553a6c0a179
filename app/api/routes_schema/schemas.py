from pydantic import BaseModel


class SchemaUpload(BaseModel):
    file_name: str
    svg_content: str


class SchemaContentUpdate(BaseModel):
    svg_content: str
