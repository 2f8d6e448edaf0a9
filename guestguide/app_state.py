# guestguide/app_state.py
"""
Explicit application state for the host/guest front ends.

Every interaction handler takes an AppState and returns a new one; nothing
here mutates shared globals.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum

from guestguide.property_profile import PropertyProfile, new_profile

TOTAL_STEPS = 7
STEP_ONE_REQUIRED_MESSAGE = "Please enter property name and location before continuing."


class AppMode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    ONBOARDING = "ONBOARDING"
    DASHBOARD = "DASHBOARD"
    EDITING = "EDITING"
    VIEWING = "VIEWING"
    GUEST_VIEWING = "GUEST_VIEWING"


@dataclass(frozen=True)
class UserProfile:
    id: str
    name: str
    email: str = ""

    @classmethod
    def from_auth(cls, user_id: str, email: str = "", full_name: str | None = None) -> "UserProfile":
        name = full_name or (email.split("@")[0] if email else "") or "User"
        return cls(id=user_id, name=name, email=email or "")


@dataclass(frozen=True)
class AppState:
    mode: AppMode = AppMode.UNAUTHENTICATED
    user: UserProfile | None = None
    active_profile: PropertyProfile | None = None
    current_step: int = 1
    generated_content: str | None = None
    notice: str | None = None


class InvalidTransition(Exception):
    pass


def initial_state() -> AppState:
    return AppState()


def state_to_dict(state: AppState) -> dict:
    return {
        "mode": state.mode.value,
        "user": asdict(state.user) if state.user else None,
        "active_profile": state.active_profile.to_record() if state.active_profile else None,
        "current_step": state.current_step,
        "generated_content": state.generated_content,
        "notice": state.notice,
    }


def state_from_dict(data: dict | None) -> AppState:
    """
    Rebuilds the state a client sent back. Anything missing or unknown
    reads as the initial value.
    """
    if not isinstance(data, dict):
        return initial_state()
    try:
        mode = AppMode(data.get("mode") or AppMode.UNAUTHENTICATED)
    except ValueError:
        mode = AppMode.UNAUTHENTICATED
    user = data.get("user")
    if isinstance(user, dict) and user.get("id"):
        user = UserProfile(id=str(user["id"]), name=str(user.get("name") or ""), email=str(user.get("email") or ""))
    else:
        user = None
    profile = data.get("active_profile")
    profile = PropertyProfile.model_validate(profile) if isinstance(profile, dict) else None
    try:
        step = min(max(int(data.get("current_step") or 1), 1), TOTAL_STEPS)
    except (TypeError, ValueError):
        step = 1
    return AppState(
        mode=mode,
        user=user,
        active_profile=profile,
        current_step=step,
        generated_content=data.get("generated_content"),
        notice=data.get("notice"),
    )


def sign_in(state: AppState, user: UserProfile) -> AppState:
    mode = AppMode.DASHBOARD if state.mode == AppMode.UNAUTHENTICATED else state.mode
    return replace(state, user=user, mode=mode, notice=None)


def sign_out(state: AppState) -> AppState:
    if state.mode == AppMode.GUEST_VIEWING:
        return replace(state, user=None)
    return AppState()


def open_guest_view(state: AppState, profile: PropertyProfile) -> AppState:
    return replace(
        state,
        mode=AppMode.GUEST_VIEWING,
        active_profile=profile,
        generated_content=profile.ai_generated_content,
        notice=None,
    )


def _require_user(state: AppState) -> None:
    if state.user is None:
        raise InvalidTransition(f"{state.mode.value}: sign in first")


def create_new(state: AppState) -> AppState:
    _require_user(state)
    return replace(
        state,
        mode=AppMode.ONBOARDING,
        active_profile=new_profile(host_name=state.user.name),
        current_step=1,
        generated_content=None,
        notice=None,
    )


def edit(state: AppState, profile: PropertyProfile) -> AppState:
    _require_user(state)
    return replace(
        state,
        mode=AppMode.EDITING,
        active_profile=profile,
        generated_content=profile.ai_generated_content,
        notice=None,
    )


def view(state: AppState, profile: PropertyProfile, content: str) -> AppState:
    _require_user(state)
    return replace(
        state,
        mode=AppMode.VIEWING,
        active_profile=profile,
        generated_content=content,
        notice=None,
    )


def back_to_dashboard(state: AppState) -> AppState:
    _require_user(state)
    return replace(state, mode=AppMode.DASHBOARD, notice=None)


def update_profile(state: AppState, profile: PropertyProfile) -> AppState:
    if state.mode not in (AppMode.ONBOARDING, AppMode.EDITING):
        raise InvalidTransition(f"{state.mode.value}: nothing is being edited")
    return replace(state, active_profile=profile)


def next_step(state: AppState) -> AppState:
    profile = state.active_profile
    if state.current_step == 1 and (
        profile is None or not profile.property_name.strip() or not profile.location.strip()
    ):
        return replace(state, notice=STEP_ONE_REQUIRED_MESSAGE)
    return replace(state, current_step=min(state.current_step + 1, TOTAL_STEPS), notice=None)


def prev_step(state: AppState) -> AppState:
    return replace(state, current_step=max(state.current_step - 1, 1), notice=None)


def reject_submission(state: AppState, message: str) -> AppState:
    """Missing required input sends the host back to the first step."""
    return replace(state, current_step=1, notice=message)


def finish_generation(state: AppState, profile: PropertyProfile, content: str) -> AppState:
    """A successful save lands on the viewer with the fresh content."""
    return view(state, profile, content)


def fail_generation(state: AppState, message: str) -> AppState:
    """A failed save stays where it was and only reports the error."""
    return replace(state, notice=message)
