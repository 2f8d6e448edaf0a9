# guestguide/backend.py

import json
import logging
import traceback

from pydantic import ValidationError

from guestguide.app_state import (
    AppMode,
    AppState,
    InvalidTransition,
    UserProfile,
    back_to_dashboard,
    create_new,
    edit,
    fail_generation,
    finish_generation,
    next_step,
    open_guest_view,
    prev_step,
    reject_submission,
    sign_in,
    sign_out,
    state_from_dict,
    state_to_dict,
    update_profile,
    view,
)
from guestguide.base_utils import BaseUtils
from guestguide.concierge import ConciergeSession
from guestguide.google_helpers import create_session_factory
from guestguide.guide_compiler import GuideCompiler, GuideGenerationError
from guestguide.guide_document import GuideDocument, GuideDocumentError, is_usable_guide_content, render_guide
from guestguide.property_profile import PropertyProfile, ProfileValidationError
from guestguide.property_store import PropertyStore, PropertyStoreError
from guestguide.session_cache import GLOBAL_CONCIERGE_SESSIONS, ConciergeSessionCache

logger = logging.getLogger("guestguide_backend")

BUSY_MESSAGE = "AI Superhost is currently busy. Please try again in a few seconds."
EMPTY_GUIDE_MESSAGE = "AI failed to generate content."

# custom error types raised by PropertyProfile, already worded for the host
_USER_WORDED_ERRORS = ("not_an_image", "image_too_large")


class RequestError(Exception):
    """
    Failure that goes back to the caller verbatim, optionally with the
    state the failed interaction leaves behind.
    """

    def __init__(self, message: str, state: AppState | None = None):
        super().__init__(message)
        self.state = state


def validation_message(e: ValidationError) -> str:
    err = e.errors()[0]
    if err["type"] in _USER_WORDED_ERRORS:
        return err["msg"]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"Invalid {field}: {err['msg']}" if field else err["msg"]


class Backend(BaseUtils):
    def __init__(self, session_factory=None, guide_llm=None, concierge_llm=None,
                 sessions: ConciergeSessionCache | None = None):
        self.SessionFactory = session_factory or create_session_factory()
        self.store = PropertyStore(self.SessionFactory)
        self.sessions = sessions if sessions is not None else GLOBAL_CONCIERGE_SESSIONS

        if guide_llm is None and concierge_llm is None:
            guide_llm, concierge_llm = self._build_llms_for_model()
            if guide_llm is None:
                logger.info("Warning: no LLM available, guide generation will fail until configured.")
        self.guide_llm = guide_llm
        self.concierge_llm = concierge_llm
        self.compiler = GuideCompiler(self.guide_llm)

    def process_request(self, request_data: dict) -> dict:
        """
        Core request handling logic.
        Takes a parsed JSON dict {type, user_id, payload, state} and returns the
        response_data dict. `state` is the AppState the client holds; every
        handler takes it and the response carries the state it left behind.
        """
        request_type = request_data.get("type")
        payload = request_data.get("payload") or {}

        try:
            preview = json.dumps(request_data, indent=2)[:2000]
        except (TypeError, ValueError):
            preview = str(request_data)[:2000]
        logger.debug(f"process_request request {preview}")

        response_data = {
            "status": "success",
            "message": "",
            "data": None,
            "state": None,
        }

        handlers = {
            "list_guides": self.handle_list_guides,
            "new_guide": self.handle_new_guide,
            "edit_guide": self.handle_edit_guide,
            "next_step": self.handle_next_step,
            "prev_step": self.handle_prev_step,
            "save_guide": self.handle_save_guide,
            "view_guide": self.handle_view_guide,
            "delete_guide": self.handle_delete_guide,
            "guest_view": self.handle_guest_view,
            "concierge_start": self.handle_concierge_start,
            "concierge_ask": self.handle_concierge_ask,
        }
        handler = handlers.get(request_type)
        if handler is None:
            response_data["status"] = "error"
            response_data["message"] = f"Unknown request type: {request_type}"
            return response_data

        try:
            state = self._incoming_state(request_data)
        except ValidationError as e:
            response_data["status"] = "error"
            response_data["message"] = validation_message(e)
            return response_data

        try:
            state, response_data["data"] = handler(state, payload)
        except RequestError as e:
            response_data["status"] = "error"
            response_data["message"] = str(e)
            state = e.state or state
        except InvalidTransition as e:
            response_data["status"] = "error"
            response_data["message"] = f"Not available right now ({e})."
        except Exception as e:
            logger.error(f"Error while processing {request_type}: {e}\n{traceback.format_exc()}")
            response_data["status"] = "error"
            response_data["message"] = "Something went wrong. Please try again."

        response_data["state"] = state_to_dict(state)
        logger.debug(f"response {request_type}: {response_data['status']} {response_data['message']}")
        return response_data

    # -----------------------
    # Helpers
    # -----------------------

    def _incoming_state(self, request_data: dict) -> AppState:
        """Client state reconciled with who the auth layer says is calling."""
        state = state_from_dict(request_data.get("state"))
        user_id = request_data.get("user_id")
        if not user_id:
            return sign_out(state) if state.user else state

        user_id = str(user_id)
        if state.user is not None and state.user.id == user_id:
            return state
        if state.user is not None:
            state = sign_out(state)
        user = UserProfile.from_auth(user_id, request_data.get("user_email") or "", request_data.get("user_name"))
        return sign_in(state, user)

    def _require_user(self, state: AppState) -> str:
        if state.user is None:
            raise RequestError("Please sign in first.")
        return state.user.id

    def _parse_profile(self, raw) -> PropertyProfile:
        try:
            return PropertyProfile.model_validate(raw)
        except ValidationError as e:
            raise RequestError(validation_message(e)) from e

    def _owned_guide(self, user_id: str, guide_id) -> PropertyProfile:
        if not guide_id:
            raise RequestError("Missing 'id' in payload")
        profile = self.store.get(str(guide_id))
        if profile is None or self.store.owner_of(profile.id) != user_id:
            raise RequestError(f"Guide not found: {guide_id}")
        return profile

    def _generate(self, profile: PropertyProfile) -> str:
        content = self.compiler.compile(profile)
        if not is_usable_guide_content(content):
            logger.error(f"Unusable guide content for {profile.id}: {(content or '')[:500]}")
            raise GuideGenerationError(EMPTY_GUIDE_MESSAGE)
        return content

    # -----------------------
    # Host handlers
    # -----------------------

    def handle_list_guides(self, state, payload):
        user_id = self._require_user(state)
        try:
            guides = self.store.list_for_user(user_id)
        except PropertyStoreError as e:
            logger.error(f"Failed to fetch guides: {e}")
            raise RequestError("Failed to load your guides.") from e
        return back_to_dashboard(state), {"guides": [g.to_record() for g in guides]}

    def handle_new_guide(self, state, payload):
        self._require_user(state)
        state = create_new(state)
        host_name = payload.get("host_name")
        if host_name:
            state = update_profile(state, state.active_profile.model_copy(update={"host_name": host_name}))
        return state, {"guide": state.active_profile.to_record()}

    def handle_edit_guide(self, state, payload):
        user_id = self._require_user(state)
        state = edit(state, self._owned_guide(user_id, payload.get("id")))
        return state, {"guide": state.active_profile.to_record()}

    def handle_next_step(self, state, payload):
        if payload.get("guide"):
            state = update_profile(state, self._parse_profile(payload["guide"]))
        state = next_step(state)
        if state.notice:
            raise RequestError(state.notice, state=state)
        return state, {"current_step": state.current_step}

    def handle_prev_step(self, state, payload):
        if payload.get("guide"):
            state = update_profile(state, self._parse_profile(payload["guide"]))
        state = prev_step(state)
        return state, {"current_step": state.current_step}

    def handle_save_guide(self, state, payload):
        user_id = self._require_user(state)
        profile = self._parse_profile(payload.get("guide") or payload)
        if not profile.id:
            raise RequestError("Missing 'id' in guide")

        existing_owner = self.store.owner_of(profile.id)
        if existing_owner is not None and existing_owner != user_id:
            raise RequestError(f"Guide not found: {profile.id}")

        if state.mode in (AppMode.ONBOARDING, AppMode.EDITING):
            state = update_profile(state, profile)

        try:
            to_submit = profile.for_submission()
        except ProfileValidationError as e:
            raise RequestError(str(e), state=reject_submission(state, str(e))) from e

        try:
            content = self._generate(to_submit)
            to_submit.ai_generated_content = content
            self.store.upsert(to_submit, user_id)
        except GuideGenerationError as e:
            logger.error(f"Submit Error: {e}")
            message = f"Error building guide: {e.user_message}"
            raise RequestError(message, state=fail_generation(state, message)) from e
        except PropertyStoreError as e:
            logger.error(f"Submit Error: {e}")
            message = f"Error building guide: {e}"
            raise RequestError(message, state=fail_generation(state, message)) from e

        state = finish_generation(state, to_submit, content)
        return state, {
            "guide": to_submit.to_record(),
            "view": render_guide(GuideDocument.from_text(content), to_submit.property_name),
        }

    def handle_view_guide(self, state, payload):
        user_id = self._require_user(state)
        profile = self._owned_guide(user_id, payload.get("id"))

        content = profile.ai_generated_content
        if not content:
            try:
                content = self._generate(profile)
                self.store.save_generated_content(profile.id, content)
            except (GuideGenerationError, PropertyStoreError) as e:
                logger.error(f"View generation error: {e}")
                raise RequestError(BUSY_MESSAGE, state=fail_generation(state, BUSY_MESSAGE)) from e
            profile.ai_generated_content = content

        try:
            rendered = render_guide(GuideDocument.from_text(content), profile.property_name)
        except GuideDocumentError:
            logger.error(f"Failed to parse guide JSON for {profile.id}")
            rendered = None
        state = view(state, profile, content)
        return state, {"guide": profile.to_record(), "content": content, "view": rendered}

    def handle_delete_guide(self, state, payload):
        user_id = self._require_user(state)
        profile = self._owned_guide(user_id, payload.get("id"))
        try:
            deleted = self.store.delete(profile.id)
        except PropertyStoreError as e:
            raise RequestError(f"Error deleting guide: {e}") from e
        if not deleted:
            raise RequestError(f"Error deleting guide: {profile.id} was not deleted")
        return back_to_dashboard(state), {"id": profile.id, "deleted": True}

    # -----------------------
    # Guest handlers
    # -----------------------

    def handle_guest_view(self, state, payload):
        """
        Unauthenticated: any caller holding the id gets the read-only guide.
        """
        guide_id = payload.get("id") or payload.get("g")
        profile = self.store.get(str(guide_id)) if guide_id else None
        if profile is None:
            raise RequestError("Guide not found.")

        try:
            doc = GuideDocument.from_text(profile.ai_generated_content or "{}")
        except GuideDocumentError:
            doc = GuideDocument()
        return open_guest_view(state, profile), {
            "id": profile.id,
            "property_name": profile.property_name,
            "view": render_guide(doc, profile.property_name, guest_mode=True) if not doc.is_empty() else None,
        }

    def handle_concierge_start(self, state, payload):
        guide_id = payload.get("id") or payload.get("g")
        profile = self.store.get(str(guide_id)) if guide_id else None
        if profile is None:
            raise RequestError("Guide not found.")
        try:
            doc = GuideDocument.from_text(profile.ai_generated_content)
        except GuideDocumentError as e:
            raise RequestError("This guide has no content yet.") from e
        if doc.is_empty():
            raise RequestError("This guide has no content yet.")

        session = ConciergeSession.start(doc, self.concierge_llm, property_name=profile.property_name)
        self.sessions.put(session)
        return state, {"session_id": session.session_id, "message": session.greeting()}

    def handle_concierge_ask(self, state, payload):
        session = self.sessions.get(payload.get("session_id") or "")
        if session is None:
            raise RequestError("Chat session expired. Please reopen the guide.")
        question = (payload.get("text") or payload.get("question") or "").strip()
        if not question:
            raise RequestError("Please type a question.")
        return state, {"session_id": session.session_id, "message": session.ask(question)}
