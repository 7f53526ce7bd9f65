from sqlalchemy import Column, DateTime, Integer, String, Text

from ..db.base_class import Base


class FunctionRecord(Base):
    __tablename__ = "functions"

    id = Column(String, primary_key=True, index=True)
    name = Column(String(50), nullable=False, index=True)
    description = Column(String(255), nullable=True)
    source_type = Column(String, nullable=False, default="inline")
    runtime = Column(String, nullable=False)
    handler = Column(String, nullable=False, default="index.handler")
    timeout = Column(Integer, nullable=False, default=30)  # in seconds
    memory = Column(Integer, nullable=False, default=128)  # in MB
    inline_code = Column(Text, nullable=False, default="")
    repo_url = Column(String, nullable=True)
    branch = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    input_schema = Column(Text, nullable=False, default="{}")
    output_schema = Column(Text, nullable=False, default="{}")
    credential_id = Column(String, nullable=True)  # opaque reference, no ownership
    status = Column(String, nullable=False, default="draft")
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    last_deployed_at = Column(DateTime(timezone=True), nullable=True)
