"""Guard and company profile data, plus completeness scoring."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

from utils.parsing import parse_date, parse_datetime


class UserType(str, Enum):
    GUARD = "guard"
    COMPANY = "company"

    @property
    def dutch_label(self) -> str:
        return "Beveiliger" if self is UserType.GUARD else "Bedrijf"


@dataclass(frozen=True)
class BasicInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""
    bio: str = ""
    profile_photo_url: str | None = None
    birth_date: date | None = None
    nationality: str = "Nederlandse"

    def copy_with(self, **changes: Any) -> BasicInfo:
        return replace(self, **changes)


@dataclass(frozen=True)
class ProfessionalInfo:
    experience_years: int = 0
    specializations: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    has_drivers_license: bool = False

    def copy_with(self, **changes: Any) -> ProfessionalInfo:
        for key in ("specializations", "languages", "skills"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return replace(self, **changes)


@dataclass(frozen=True)
class CompanyInfo:
    company_name: str = ""
    kvk_number: str = ""
    vat_number: str = ""
    industry: str = ""
    website: str = ""
    description: str = ""
    employee_count: int | None = None

    def copy_with(self, **changes: Any) -> CompanyInfo:
        return replace(self, **changes)


@dataclass(frozen=True)
class ProfileCertificate:
    """Certificate as listed on a profile; the compliance record lives in core.certificates."""

    id: str
    name: str
    issuing_organization: str
    issue_date: date
    expiry_date: date | None = None
    certificate_number: str = ""
    description: str = ""
    is_verified: bool = False

    def is_expired(self, today: date | None = None) -> bool:
        if self.expiry_date is None:
            return False
        return (today or date.today()) > self.expiry_date

    def is_expiring_soon(self, today: date | None = None) -> bool:
        if self.expiry_date is None:
            return False
        days = (self.expiry_date - (today or date.today())).days
        return 0 < days <= 30

    def copy_with(self, **changes: Any) -> ProfileCertificate:
        return replace(self, **changes)


@dataclass(frozen=True)
class ProfileStatistics:
    completed_jobs: int = 0
    average_rating: float = 0.0
    total_earned: float = 0.0
    active_since: date | None = None
    success_percentage: float = 0.0
    repeat_clients: int = 0
    average_response_minutes: int = 0


@dataclass(frozen=True)
class VerificationStatus:
    identity_verified: bool = False
    address_verified: bool = False
    certificates_verified: bool = False
    last_verification_date: datetime | None = None

    def merged_with(self, other: VerificationStatus) -> VerificationStatus:
        """Keep every verification already obtained."""
        return VerificationStatus(
            identity_verified=self.identity_verified or other.identity_verified,
            address_verified=self.address_verified or other.address_verified,
            certificates_verified=self.certificates_verified or other.certificates_verified,
            last_verification_date=other.last_verification_date or self.last_verification_date,
        )


@dataclass(frozen=True)
class PrivacySettings:
    profile_visible: bool = True
    contact_info_visible: bool = False
    availability_visible: bool = True
    statistics_visible: bool = True


@dataclass(frozen=True)
class ProfileData:
    basic_info: BasicInfo = field(default_factory=BasicInfo)
    professional_info: ProfessionalInfo | None = None
    company_info: CompanyInfo | None = None
    certificates: tuple[ProfileCertificate, ...] = ()
    # weekday -> list of time slots, e.g. {"maandag": ["08:00-16:00"]}
    availability: dict[str, list[str]] = field(default_factory=dict)
    statistics: ProfileStatistics = field(default_factory=ProfileStatistics)
    verification_status: VerificationStatus = field(default_factory=VerificationStatus)
    privacy_settings: PrivacySettings = field(default_factory=PrivacySettings)
    status: str = "active"

    def copy_with(self, **changes: Any) -> ProfileData:
        if "certificates" in changes:
            changes["certificates"] = tuple(changes["certificates"])
        return replace(self, **changes)

    @classmethod
    def default_for(cls, user_type: UserType, today: date | None = None) -> ProfileData:
        return cls(
            professional_info=ProfessionalInfo() if user_type is UserType.GUARD else None,
            company_info=CompanyInfo() if user_type is UserType.COMPANY else None,
            statistics=ProfileStatistics(active_since=today or date.today()),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict; dates become ISO strings."""
        return _jsonable(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileData:
        basic = dict(data.get("basic_info") or {})
        basic["birth_date"] = parse_date(basic.get("birth_date"))
        professional = data.get("professional_info")
        company = data.get("company_info")
        statistics = dict(data.get("statistics") or {})
        statistics["active_since"] = parse_date(statistics.get("active_since"))
        verification = dict(data.get("verification_status") or {})
        verification["last_verification_date"] = parse_datetime(verification.get("last_verification_date"))

        certificates = []
        for cert in data.get("certificates") or []:
            cert = dict(cert)
            cert["issue_date"] = parse_date(cert.get("issue_date"))
            cert["expiry_date"] = parse_date(cert.get("expiry_date"))
            certificates.append(ProfileCertificate(**cert))

        return cls(
            basic_info=BasicInfo(**basic),
            professional_info=ProfessionalInfo().copy_with(**professional) if professional is not None else None,
            company_info=CompanyInfo(**company) if company is not None else None,
            certificates=tuple(certificates),
            availability={k: list(v) for k, v in (data.get("availability") or {}).items()},
            statistics=ProfileStatistics(**statistics),
            verification_status=VerificationStatus(**verification),
            privacy_settings=PrivacySettings(**(data.get("privacy_settings") or {})),
            status=data.get("status") or "active",
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def calculate_completeness(profile: ProfileData, user_type: UserType) -> float:
    """Percentage of filled-in profile fields for the given user type."""
    basic = profile.basic_info
    checks = [
        bool(basic.name),
        bool(basic.email),
        bool(basic.phone),
        bool(basic.address),
        bool(basic.postal_code),
        bool(basic.city),
        bool(basic.bio),
        basic.profile_photo_url is not None,
    ]

    if user_type is UserType.GUARD:
        professional = profile.professional_info or ProfessionalInfo()
        checks += [
            professional.experience_years > 0,
            bool(professional.specializations),
            bool(professional.languages),
            bool(professional.skills),
            bool(profile.certificates),
            bool(profile.availability),
            profile.verification_status.identity_verified,
        ]
    elif user_type is UserType.COMPANY:
        company = profile.company_info or CompanyInfo()
        checks += [
            bool(company.company_name),
            bool(company.kvk_number),
            bool(company.industry),
            bool(company.description),
        ]

    return sum(checks) / len(checks) * 100


@dataclass(frozen=True)
class LoadedProfile:
    user_id: str
    user_type: UserType
    profile_data: ProfileData
    completeness_percentage: float
    last_updated: datetime
    has_unsaved_changes: bool = False

    def copy_with(self, **changes: Any) -> LoadedProfile:
        return replace(self, **changes)

    @property
    def completeness_status(self) -> str:
        if self.completeness_percentage >= 90:
            return "Profiel compleet"
        if self.completeness_percentage >= 70:
            return "Bijna compleet"
        if self.completeness_percentage >= 50:
            return "Gedeeltelijk ingevuld"
        return "Profiel incompleet"

    @property
    def missing_fields(self) -> list[str]:
        basic = self.profile_data.basic_info
        missing = []
        if not basic.name:
            missing.append("Naam")
        if not basic.email:
            missing.append("E-mailadres")
        if not basic.phone:
            missing.append("Telefoonnummer")
        if not basic.address:
            missing.append("Adres")
        if not basic.bio:
            missing.append("Biografie")
        if basic.profile_photo_url is None:
            missing.append("Profielfoto")

        if self.user_type is UserType.GUARD:
            professional = self.profile_data.professional_info
            if professional is not None and not professional.specializations:
                missing.append("Specialisaties")
            if not self.profile_data.certificates:
                missing.append("Certificaten")
            if not self.profile_data.availability:
                missing.append("Beschikbaarheid")
        else:
            company = self.profile_data.company_info
            if company is not None and not company.kvk_number:
                missing.append("KvK-nummer")
            if company is not None and not company.industry:
                missing.append("Branche")
        return missing

    @property
    def is_verified(self) -> bool:
        status = self.profile_data.verification_status
        return status.identity_verified and status.address_verified

    @property
    def verification_label(self) -> str:
        if self.is_verified:
            return "Geverifieerd"
        if self.profile_data.verification_status.identity_verified:
            return "Gedeeltelijk geverifieerd"
        return "Niet geverifieerd"
