from __future__ import annotations

from ..extensions import db
from docflow.time_utils import to_utc_z


# Codes at or above this value are departments inside the district office
DISTRICT_DEPARTMENT_CODE_START = 100_000


class Branch(db.Model):
    """
    Organizational unit identified by its BA code.

    Field branches and district departments share this shape and are told
    apart only by code range.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    ba_code = db.Column(db.Integer, nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    region_code = db.Column(db.String(16), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_district_department(self) -> bool:
        return self.ba_code >= DISTRICT_DEPARTMENT_CODE_START

    def __repr__(self) -> str:
        return f"<Branch ba_code={self.ba_code} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ba_code": self.ba_code,
            "name": self.name,
            "region_code": self.region_code,
            "is_active": self.is_active,
            "is_district_department": self.is_district_department,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
