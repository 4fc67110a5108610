"""
Data Model for the LeafGuard API
Typed containers for the payloads exchanged with the backend
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from leafguard_core.errors import ServerError, ValidationError


OFFLINE_TOKEN = "offline_token"


def _require(payload: Dict[str, Any], key: str, endpoint: str) -> Any:
    """Fetch a mandatory key from a response body"""
    if key not in payload:
        raise ServerError(f"Response is missing '{key}'", endpoint=endpoint)
    return payload[key]


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class UserProfile:
    """The signed-in user as returned by the auth and users endpoints"""
    id: str
    name: str
    email: str
    role: str = "Farmer"
    is_subscribed: bool = False
    remaining_free_scans: int = 0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], endpoint: str = "") -> UserProfile:
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            name=_require(payload, "name", endpoint),
            email=_require(payload, "email", endpoint),
            role=payload.get("role") or "Farmer",
            is_subscribed=bool(payload.get("isSubscribed", False)),
            remaining_free_scans=int(payload.get("remainingFreeScans", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation; never contains a token"""
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isSubscribed": self.is_subscribed,
            "remainingFreeScans": self.remaining_free_scans,
        }


@dataclass
class Session:
    """
    Authentication state held by the client.

    A profile without a real bearer token is only valid when offline is
    True, in which case token holds OFFLINE_TOKEN.
    """
    token: Optional[str] = None
    profile: Optional[UserProfile] = None
    offline: bool = False

    def __post_init__(self):
        if self.offline:
            if self.profile is None:
                raise ValueError("An offline session needs a profile")
            self.token = OFFLINE_TOKEN
        elif (self.token is None) != (self.profile is None):
            raise ValueError("Token and profile must both be present or both absent")

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None

    @property
    def has_bearer_token(self) -> bool:
        return self.token is not None and self.token != OFFLINE_TOKEN

    @classmethod
    def from_auth_response(cls, payload: Dict[str, Any], endpoint: str = "") -> Session:
        token = payload.get("token")
        if not token:
            raise ServerError("No token received from server", endpoint=endpoint)
        return cls(token=token, profile=UserProfile.from_dict(payload, endpoint))


@dataclass(frozen=True)
class OfflineCredentials:
    """
    Email plus bcrypt hash of the password from the last successful online
    login, with the profile returned by that login.
    """
    email: str
    password_hash: str
    profile: Optional[UserProfile] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "passwordHash": self.password_hash,
            "profile": self.profile.to_dict() if self.profile else None,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> OfflineCredentials:
        profile = payload.get("profile")
        return cls(
            email=payload["email"],
            password_hash=payload["passwordHash"],
            profile=UserProfile.from_dict(profile) if profile else None,
        )


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one disease detection request"""
    disease: str
    confidence: float
    description: str = ""
    symptoms: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    preventions: List[str] = field(default_factory=list)
    image_url: str = ""
    remaining_scans: int = 0

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(f"Confidence {self.confidence} is outside [0, 1]")

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], endpoint: str = "") -> DetectionResult:
        # Some deployments wrap the fields in {"data": {...}}
        body = payload["data"] if isinstance(payload.get("data"), dict) else payload
        try:
            confidence = float(_require(body, "confidence", endpoint))
        except (TypeError, ValueError):
            raise ServerError("Confidence is not a number", endpoint=endpoint)
        if not 0.0 <= confidence <= 1.0:
            raise ServerError(f"Confidence {confidence} is outside [0, 1]", endpoint=endpoint)
        remaining = body.get("remainingScans", payload.get("remainingScans", 0))
        return cls(
            disease=_require(body, "disease", endpoint),
            confidence=confidence,
            description=body.get("description") or "",
            symptoms=list(body.get("symptoms") or []),
            recommendations=list(body.get("recommendations") or []),
            preventions=list(body.get("preventions") or []),
            image_url=body.get("imageUrl") or "",
            remaining_scans=int(remaining or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disease": self.disease,
            "confidence": self.confidence,
            "description": self.description,
            "symptoms": list(self.symptoms),
            "recommendations": list(self.recommendations),
            "preventions": list(self.preventions),
            "imageUrl": self.image_url,
            "remainingScans": self.remaining_scans,
        }


@dataclass(frozen=True)
class ScanInput:
    """A detection to be saved to history, before the server assigns ids"""
    plant_name: str
    detection: DetectionResult

    def to_dict(self) -> Dict[str, Any]:
        body = self.detection.to_dict()
        body["plantName"] = self.plant_name
        return body


@dataclass(frozen=True)
class SavedScan:
    """A scan record from the history endpoints"""
    id: str
    user_id: str
    plant_name: str
    detection: DetectionResult
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], endpoint: str = "") -> SavedScan:
        return cls(
            id=str(payload.get("_id") or ""),
            user_id=str(payload.get("userId") or payload.get("user") or ""),
            plant_name=payload.get("plantName") or "",
            detection=DetectionResult.from_dict(payload, endpoint),
            created_at=_parse_datetime(payload.get("createdAt")),
        )

    def to_record(self) -> Dict[str, Any]:
        """Flat row used by the scan history DataFrame"""
        return {
            "id": self.id,
            "plant_name": self.plant_name,
            "disease": self.detection.disease,
            "confidence": self.detection.confidence,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class SubscriptionPlan:
    id: str
    name: str
    price: float
    features: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], endpoint: str = "") -> SubscriptionPlan:
        return cls(
            id=_require(payload, "id", endpoint),
            name=payload.get("name") or "",
            price=float(payload.get("price") or 0),
            features=list(payload.get("features") or []),
        )


@dataclass(frozen=True)
class SubscriptionRecord:
    plan: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = False

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> SubscriptionRecord:
        return cls(
            plan=payload.get("plan") or "",
            start_date=_parse_datetime(payload.get("startDate")),
            end_date=_parse_datetime(payload.get("endDate")),
            is_active=bool(payload.get("isActive", False)),
        )


@dataclass(frozen=True)
class SubscriptionStatus:
    is_subscribed: bool
    remaining_free_scans: Optional[int] = None
    subscription: Optional[SubscriptionRecord] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> SubscriptionStatus:
        record = payload.get("subscription")
        return cls(
            is_subscribed=bool(payload.get("isSubscribed", False)),
            remaining_free_scans=(
                int(payload["remainingFreeScans"]) if "remainingFreeScans" in payload else None
            ),
            subscription=SubscriptionRecord.from_dict(record) if record else None,
        )


@dataclass(frozen=True)
class WeatherReading:
    """Current conditions for a location"""
    temperature: float
    humidity: float
    wind_speed: float
    description: str
    icon_url: str
    location: str
    pressure: float
    feels_like: float
    sunrise: int
    sunset: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
