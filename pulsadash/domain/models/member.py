"""Member records as returned by the ``/members`` list endpoint."""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


@dataclass
class UserVerification:
    id: str
    type_: str
    status: str
    image_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserVerification":
        return cls(
            id=str(data["id"]),
            type_=str(data["type_"] if "type_" in data else data["type"]),
            status=str(data["status"]),
            image_url=data.get("image_url"),
        )


@dataclass
class Member:
    """A reseller account. ``kode`` is the unique member code."""
    kode: str
    nama: str
    saldo: float = 0
    aktif: bool = False
    alamat: Optional[str] = None
    kode_upline: Optional[str] = None
    kode_level: Optional[str] = None
    tgl_daftar: Optional[str] = None
    tgl_aktivitas: Optional[str] = None
    nama_pemilik: Optional[str] = None
    markup: Optional[float] = None
    verification: List[UserVerification] = field(default_factory=list)

    @property
    def record_key(self) -> str:
        return self.kode

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        """Builds a member from an API or cache payload, ignoring unknown fields."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["kode"] = str(data["kode"])
        values["nama"] = str(data.get("nama") or "")
        values["verification"] = [
            UserVerification.from_dict(item) for item in (data.get("verification") or [])
        ]
        return cls(**values)
