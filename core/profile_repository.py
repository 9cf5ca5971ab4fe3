"""ProfileRepository: versioned guard/company profiles in the key/value store."""

import json
from datetime import date, datetime
from typing import Any

from .errors import ProfileError
from .profile import (
    CompanyInfo,
    LoadedProfile,
    ProfessionalInfo,
    ProfileCertificate,
    ProfileData,
    UserType,
    VerificationStatus,
    calculate_completeness,
)

CURRENT_PROFILE_VERSION = 1
PROFILE_PREFIX = "profile_"

VERIFICATION_KINDS = ("identity", "address", "certificates")


def _key(user_id: str, suffix: str) -> str:
    return f"{PROFILE_PREFIX}{user_id}_{suffix}"


class ProfileRepository:
    """
    Loads and saves profiles through the store's key/value API
    (get_value / set_value / set_values / delete_value / keys_with_prefix).
    A save writes all three keys in one set_values call so they change together.

    Keys per user: profile_<id>_data, profile_<id>_version, profile_<id>_last_updated.
    """

    def __init__(self, store: Any) -> None:
        self._store = store

    # =========================================================================
    # Load / save
    # =========================================================================

    def load_profile(self, user_id: str, user_type: UserType) -> LoadedProfile:
        """Load a profile; on any error return an empty default profile at 0% completeness."""
        try:
            version = int(self._store.get_value(_key(user_id, "version"), "0") or 0)
            if version < CURRENT_PROFILE_VERSION:
                self._migrate_profile(user_id, version)

            raw = self._store.get_value(_key(user_id, "data"))
            if raw:
                profile_data = ProfileData.from_dict(json.loads(raw))
            else:
                profile_data = ProfileData.default_for(user_type)

            raw_updated = self._store.get_value(_key(user_id, "last_updated"))
            last_updated = datetime.fromisoformat(raw_updated) if raw_updated else datetime.now()

            return LoadedProfile(
                user_id=user_id,
                user_type=user_type,
                profile_data=profile_data,
                completeness_percentage=calculate_completeness(profile_data, user_type),
                last_updated=last_updated,
            )
        except Exception as e:
            print(f"Error loading profile {user_id}: {e}")
            return LoadedProfile(
                user_id=user_id,
                user_type=user_type,
                profile_data=ProfileData.default_for(user_type),
                completeness_percentage=0.0,
                last_updated=datetime.now(),
            )

    def save_profile(self, profile: LoadedProfile) -> datetime:
        """Persist profile data plus version and timestamp. Raises ProfileError on failure."""
        saved_at = datetime.now()
        try:
            payload = json.dumps(profile.profile_data.to_dict(), ensure_ascii=False)
            self._store.set_values({
                _key(profile.user_id, "data"): payload,
                _key(profile.user_id, "version"): CURRENT_PROFILE_VERSION,
                _key(profile.user_id, "last_updated"): saved_at.isoformat(),
            })
        except Exception as e:
            print(f"Error saving profile {profile.user_id}: {e}")
            raise ProfileError(f"Failed to save profile: {e}") from e
        return saved_at

    def delete_profile(self, user_id: str) -> int:
        try:
            keys = self._store.keys_with_prefix(f"{PROFILE_PREFIX}{user_id}_")
            for key in keys:
                self._store.delete_value(key)
        except Exception as e:
            print(f"Error deleting profile {user_id}: {e}")
            raise ProfileError(f"Failed to delete profile: {e}", code="profile_delete_failed") from e
        return len(keys)

    def _migrate_profile(self, user_id: str, from_version: int) -> None:
        print(f"Migrating profile {user_id} from version {from_version} to {CURRENT_PROFILE_VERSION}")
        if from_version == 0:
            # Version 0 stored basic info under its own key
            legacy = self._store.get_value(_key(user_id, "basic_info"))
            if legacy and not self._store.get_value(_key(user_id, "data")):
                self._store.set_value(_key(user_id, "data"), json.dumps({"basic_info": json.loads(legacy)}))
                self._store.delete_value(_key(user_id, "basic_info"))
        self._store.set_value(_key(user_id, "version"), CURRENT_PROFILE_VERSION)

    # =========================================================================
    # Pure transforms
    # =========================================================================

    @staticmethod
    def update_basic_info(profile: ProfileData, **changes: Any) -> ProfileData:
        return profile.copy_with(basic_info=profile.basic_info.copy_with(**changes))

    @staticmethod
    def update_professional_info(profile: ProfileData, **changes: Any) -> ProfileData:
        current = profile.professional_info or ProfessionalInfo()
        return profile.copy_with(professional_info=current.copy_with(**changes))

    @staticmethod
    def update_company_info(profile: ProfileData, **changes: Any) -> ProfileData:
        current = profile.company_info or CompanyInfo()
        return profile.copy_with(company_info=current.copy_with(**changes))

    @staticmethod
    def add_certificate(profile: ProfileData, certificate: ProfileCertificate) -> ProfileData:
        return profile.copy_with(certificates=list(profile.certificates) + [certificate])

    @staticmethod
    def remove_certificate(profile: ProfileData, certificate_id: str) -> ProfileData:
        return profile.copy_with(certificates=[c for c in profile.certificates if c.id != certificate_id])

    @staticmethod
    def update_certificate(profile: ProfileData, certificate_id: str, **changes: Any) -> ProfileData:
        certificates = [
            c.copy_with(**changes) if c.id == certificate_id else c
            for c in profile.certificates
        ]
        return profile.copy_with(certificates=certificates)

    @staticmethod
    def update_availability(profile: ProfileData, availability: dict[str, list[str]]) -> ProfileData:
        return profile.copy_with(availability={day: list(slots) for day, slots in availability.items()})

    @staticmethod
    def update_status(profile: ProfileData, status: str) -> ProfileData:
        return profile.copy_with(status=status)

    # =========================================================================
    # Verification and export
    # =========================================================================

    @staticmethod
    def verify_profile(verification_type: str, verification_data: dict[str, Any]) -> VerificationStatus:
        """Result for one verification kind; valid when any verification data was supplied."""
        if verification_type not in VERIFICATION_KINDS:
            raise ValueError(f"Unknown verification type: {verification_type!r}")
        is_valid = bool(verification_data)
        return VerificationStatus(
            identity_verified=verification_type == "identity" and is_valid,
            address_verified=verification_type == "address" and is_valid,
            certificates_verified=verification_type == "certificates" and is_valid,
            last_verification_date=datetime.now() if is_valid else None,
        )

    @staticmethod
    def export_profile(profile: ProfileData, exported_at: datetime | None = None) -> dict[str, Any]:
        data = profile.to_dict()
        return {
            "version": CURRENT_PROFILE_VERSION,
            "exported_at": (exported_at or datetime.now()).isoformat(),
            **data,
        }

    @staticmethod
    def new_certificate(
        name: str,
        issuing_organization: str,
        issue_date: date,
        expiry_date: date | None = None,
        certificate_number: str = "",
    ) -> ProfileCertificate:
        if expiry_date is not None and expiry_date <= issue_date:
            raise ValueError(f"Certificate {name!r}: expiry date must be after issue date")
        return ProfileCertificate(
            id=f"cert_{datetime.now().strftime('%Y%m%d%H%M%S%f')}",
            name=name,
            issuing_organization=issuing_organization,
            issue_date=issue_date,
            expiry_date=expiry_date,
            certificate_number=certificate_number,
        )
