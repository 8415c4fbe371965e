"""
文件/文件夹共享模型
"""
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, UniqueConstraint, func
from filemanager.db.database import Base


class FileShare(Base):
    __tablename__ = "file_shares"
    __table_args__ = (
        UniqueConstraint("file_id", "shared_with_user_id", name="uq_file_shares_file_user"),
    )

    id = Column(String(36), primary_key=True)
    file_id = Column(String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_user_id = Column(String(64), nullable=False, index=True)
    shared_by_user_id = Column(String(64), nullable=False)
    access_level = Column(String(16), nullable=False, default="read")  # read / write
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())


class FolderShare(Base):
    __tablename__ = "folder_shares"
    __table_args__ = (
        UniqueConstraint("folder_id", "shared_with_user_id", name="uq_folder_shares_folder_user"),
    )

    id = Column(String(36), primary_key=True)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_user_id = Column(String(64), nullable=False, index=True)
    shared_by_user_id = Column(String(64), nullable=False)
    access_level = Column(String(16), nullable=False, default="write")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
