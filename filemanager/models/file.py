"""
文件模型
"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, ForeignKey, func
from filemanager.db.database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True)
    filename = Column(String(255), nullable=False)  # 磁盘上的文件名: {uuid}{扩展名}
    original_name = Column(String(255), nullable=False)  # 展示用文件名
    file_path = Column(String(1024), nullable=False)
    thumbnail_path = Column(String(1024), nullable=True)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(255), nullable=False)
    folder_id = Column(String(36), ForeignKey("folders.id"), nullable=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    access_type = Column(String(16), nullable=False, default="private")  # private / shared / public
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
