"""ProfileController: profile editing state with debounced auto-save."""

import json
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

import config
from local_storage import save_profile_export_local
from utils.debounce import Debouncer

from ..errors import AppError, ProfileError, error_from_exception
from ..profile import LoadedProfile, ProfileCertificate, ProfileData, UserType, calculate_completeness
from ..profile_repository import ProfileRepository


class ProfileState:
    pass


@dataclass(frozen=True)
class ProfileInitial(ProfileState):
    pass


@dataclass(frozen=True)
class ProfileLoading(ProfileState):
    message: str = "Profiel laden..."


@dataclass(frozen=True)
class ProfileLoaded(ProfileState):
    profile: LoadedProfile
    is_saving: bool = False
    last_saved: datetime | None = None


@dataclass(frozen=True)
class ProfileErrorState(ProfileState):
    error: AppError

    @property
    def message(self) -> str:
        return self.error.message


Listener = Callable[[ProfileState], None]


class ProfileController:
    """
    Every update applies a ProfileRepository transform to the loaded profile,
    recomputes completeness, emits the new state and schedules a save.

    The auto-save runs on the timer thread while edits keep arriving on the
    caller's thread. State changes happen under one lock and every edit bumps
    a revision number; a save only marks the profile clean when no edit
    landed while it was writing, otherwise the newer edit is saved next.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        user_id: str,
        user_type: UserType,
        auto_save_seconds: float | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        if auto_save_seconds is None:
            if settings is None:
                settings = config._get_app_settings()
            profile = {**config.DEFAULT_SETTINGS["profile"], **(settings.get("profile") or {})}
            auto_save_seconds = float(profile["auto_save_seconds"])

        self._repository = repository
        self.user_id = user_id
        self.user_type = user_type
        self._listeners: list[Listener] = []
        self._state: ProfileState = ProfileInitial()
        self._last_saved: datetime | None = None
        self._revision = 0
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._auto_saver = Debouncer(auto_save_seconds, self._save)

    @property
    def state(self) -> ProfileState:
        return self._state

    @property
    def profile(self) -> LoadedProfile | None:
        return self._state.profile if isinstance(self._state, ProfileLoaded) else None

    @property
    def has_pending_save(self) -> bool:
        return self._auto_saver.pending

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _emit(self, state: ProfileState) -> None:
        with self._lock:
            self._state = state
            for listener in list(self._listeners):
                listener(state)

    def _emit_error(self, error: BaseException) -> None:
        self._emit(ProfileErrorState(error_from_exception(error)))

    # --- Load / save ---

    def load(self) -> LoadedProfile:
        self._emit(ProfileLoading())
        loaded = self._repository.load_profile(self.user_id, self.user_type)
        with self._lock:
            self._revision += 1
            self._emit(ProfileLoaded(loaded, last_saved=self._last_saved))
        return loaded

    def _save(self) -> bool:
        # One save at a time, so an older snapshot never lands after a newer one
        with self._save_lock:
            saved, edited_meanwhile = self._write_current()
        if edited_meanwhile:
            self._auto_saver.call()
        return saved

    def _write_current(self) -> tuple[bool, bool]:
        with self._lock:
            profile = self.profile
            if profile is None or not profile.has_unsaved_changes:
                return False, False
            revision = self._revision
            self._emit(ProfileLoaded(profile, is_saving=True, last_saved=self._last_saved))

        try:
            saved_at = self._repository.save_profile(profile)
        except ProfileError as e:
            self._emit_error(e)
            return False, False

        with self._lock:
            self._last_saved = saved_at
            if revision == self._revision:
                self._emit(ProfileLoaded(
                    profile.copy_with(has_unsaved_changes=False, last_updated=saved_at),
                    last_saved=saved_at,
                ))
                return True, False
            current = self.profile
            if current is None:
                return True, False
            # Edited while writing: keep the newer profile dirty and save it next
            self._emit(ProfileLoaded(current, last_saved=saved_at))
            return True, True

    def save_now(self) -> bool:
        """Save immediately instead of waiting for the auto-save timer."""
        self._auto_saver.cancel()
        return self._save()

    def _update(self, transform: Callable[..., ProfileData], *args: Any, **kwargs: Any) -> bool:
        with self._lock:
            profile = self.profile
            if profile is None:
                self._emit(ProfileErrorState(AppError("profile_load_failed")))
                return False
            try:
                data = transform(profile.profile_data, *args, **kwargs)
            except (ValueError, TypeError) as e:
                self._emit_error(ValueError(str(e)))
                return False

            self._revision += 1
            self._emit(ProfileLoaded(
                profile.copy_with(
                    profile_data=data,
                    completeness_percentage=calculate_completeness(data, self.user_type),
                    has_unsaved_changes=True,
                ),
                last_saved=self._last_saved,
            ))
        self._auto_saver.call()
        return True

    # --- Updates ---

    def update_basic_info(self, **changes: Any) -> bool:
        return self._update(ProfileRepository.update_basic_info, **changes)

    def update_professional_info(self, **changes: Any) -> bool:
        return self._update(ProfileRepository.update_professional_info, **changes)

    def update_company_info(self, **changes: Any) -> bool:
        return self._update(ProfileRepository.update_company_info, **changes)

    def add_certificate(self, certificate: ProfileCertificate) -> bool:
        return self._update(ProfileRepository.add_certificate, certificate)

    def remove_certificate(self, certificate_id: str) -> bool:
        return self._update(ProfileRepository.remove_certificate, certificate_id)

    def update_certificate(self, certificate_id: str, **changes: Any) -> bool:
        return self._update(ProfileRepository.update_certificate, certificate_id, **changes)

    def update_availability(self, availability: dict[str, list[str]]) -> bool:
        return self._update(ProfileRepository.update_availability, availability)

    def update_status(self, status: str) -> bool:
        return self._update(ProfileRepository.update_status, status)

    def verify(self, verification_type: str, verification_data: dict[str, Any]) -> bool:
        def apply(data: ProfileData) -> ProfileData:
            result = ProfileRepository.verify_profile(verification_type, verification_data)
            return data.copy_with(verification_status=data.verification_status.merged_with(result))

        return self._update(apply)

    # --- Export / delete ---

    def export(self, save_to_file: bool = False) -> dict[str, Any]:
        profile = self.profile
        if profile is None:
            raise ProfileError("No profile loaded", code="profile_load_failed")
        exported = ProfileRepository.export_profile(profile.profile_data)
        if save_to_file:
            path = save_profile_export_local(json.dumps(exported, ensure_ascii=False, indent=2), self.user_id)
            print(f"Profile {self.user_id} exported to {path}")
        return exported

    def delete(self) -> bool:
        self._auto_saver.cancel()
        try:
            self._repository.delete_profile(self.user_id)
        except ProfileError as e:
            self._emit_error(e)
            return False
        self._emit(ProfileInitial())
        return True

    def close(self) -> None:
        """Flush a pending auto-save, then stop the timer."""
        self._auto_saver.flush()
        self._auto_saver.cancel()
        self._listeners.clear()
