"""
文件夹模型
"""
from sqlalchemy import Column, String, Boolean, TIMESTAMP, ForeignKey, Index, UniqueConstraint, func, text
from filemanager.db.database import Base


class Folder(Base):
    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("parent_id", "owner_id", "name", name="uq_folders_parent_owner_name"),
        # parent_id 为 NULL 时上面的约束不生效，根目录单独建部分唯一索引
        Index(
            "uq_folders_root_owner_name",
            "owner_id",
            "name",
            unique=True,
            postgresql_where=text("parent_id IS NULL"),
            sqlite_where=text("parent_id IS NULL"),
        ),
    )

    # 物理目录按 id 命名: {UPLOAD_PATH}/{id}
    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(36), ForeignKey("folders.id"), nullable=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
