from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Set

from tracker.core.config import Settings, settings as default_settings
from tracker.core.dom import ClickTarget, FormField, FormSnapshot, ModalContext
from tracker.schemas.events import Behavior, ContactSubmission, Event, VisitorSnapshot
from tracker.services import device
from tracker.services.classifier import classify
from tracker.services.contacts import extract_chat, extract_contact_fields, field_contact_kind, find_phone_in_text
from tracker.services.pipeline import DeliveryOutcome, DeliveryPipeline
from tracker.services.session import SessionIdentity
from tracker.telemetry_utils import is_excluded_page

logger = logging.getLogger(__name__)

# Shared page flag: set once some collector has recorded this page load's view.
PAGE_VIEW_FLAG = "page_view_claimed"

ATTACHED_MARKER = "trackingAttached"

# Scroll positions this close to the end count as the bottom of the page.
SCROLL_BOTTOM_TOLERANCE = 5


class BusState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"


@dataclass
class PageContext:
    path: str = "/"
    user_agent: str = ""
    referrer: str = ""
    # flags shared with other collectors on the same page
    flags: Dict[str, Any] = field(default_factory=dict)


def guarded(fn):
    """Public entry points log and swallow errors so the page keeps working."""
    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def _async(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except Exception:
                logger.exception("tracking error in %s", fn.__name__)
                return None

        return _async

    @functools.wraps(fn)
    def _sync(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception:
            logger.exception("tracking error in %s", fn.__name__)
            return None

    return _sync


def scroll_percent(scroll_y: float, document_height: float, viewport_height: float) -> int:
    scrollable = document_height - viewport_height
    if scrollable <= 0:
        return 0
    # half-up rounding, same as the browser's Math.round
    return int(math.floor(scroll_y / scrollable * 100 + 0.5))


class TrackingBus:
    """
    Per-page-load event dispatcher.

    Owns every "already fired" flag: initialization, page view, form
    submission in flight, scroll thresholds, unload. Deliveries run as
    background tasks on the current event loop; `drain()` waits for them.
    Capture entry points are no-ops until `initialize()` has run.
    """

    def __init__(
        self,
        pipeline: DeliveryPipeline,
        page: PageContext,
        session: SessionIdentity,
        navigate: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Any] = asyncio.sleep,
        config: Settings = default_settings,
    ):
        self.pipeline = pipeline
        self.page = page
        self.session = session
        self.navigate = navigate or (lambda url: logger.info("navigate -> %s", url))
        self.clock = clock
        self.sleep = sleep
        self.config = config

        self.state = BusState.UNINITIALIZED
        self.session_id: Optional[str] = None
        self.started_at: Optional[float] = None
        self.device_type, self.browser = device.profile(page.user_agent)

        self.page_view_tracked = False
        self.submission_in_progress = False
        self.max_scroll = 0
        self.scroll_25_tracked = False
        self.click_count = 0
        self.unload_tracked = False

        self.behavior = Behavior()
        self.profile: Dict[str, Optional[str]] = {"name": None, "phone": None, "email": None}
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    @property
    def excluded(self) -> bool:
        return is_excluded_page(self.page.path)

    @property
    def active(self) -> bool:
        return self.state is BusState.ACTIVE

    @guarded
    async def initialize(self) -> None:
        if self.state is not BusState.UNINITIALIZED:
            logger.info("tracker already initialized, skipping")
            return
        self.state = BusState.INITIALIZING
        self.session_id = self.session.get_or_create()
        self.started_at = self.clock()
        self.state = BusState.ACTIVE
        logger.info("tracking active for %s (session %s)", self.page.path, self.session_id)
        self._spawn(self._delayed_page_view())

    async def _delayed_page_view(self) -> None:
        await self.sleep(self.config.page_view_delay)
        if self.page.flags.get(PAGE_VIEW_FLAG):
            logger.debug("page view already claimed by another collector")
            self.page_view_tracked = True
            return
        self.capture_page_view()

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("no running event loop, tracking task dropped")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _sid(self) -> str:
        if self.session_id is None:
            self.session_id = self.session.get_or_create()
        return self.session_id

    # ------------------------------------------------------------------
    # emission
    # ------------------------------------------------------------------
    def _emit(self, kind: str, label: Optional[str] = None) -> Optional[Event]:
        if self.excluded:
            return None
        event = Event(
            kind=kind,
            session_id=self._sid(),
            page=self.page.path,
            device_type=self.device_type,
            browser=self.browser,
            referer=self.page.referrer or "direct",
            user_agent=self.page.user_agent or "unknown",
            label=label,
        )
        self._spawn(self.pipeline.deliver(event))
        return event

    def _snapshot(self) -> None:
        if self.excluded:
            return
        snap = VisitorSnapshot(
            session_id=self._sid(),
            page=self.page.path,
            device_type=self.device_type,
            browser=self.browser,
            behavior=self.behavior.model_copy(),
        )
        self._spawn(self.pipeline.heartbeat(snap))

    # ------------------------------------------------------------------
    # page view
    # ------------------------------------------------------------------
    @guarded
    def capture_page_view(self) -> Optional[Event]:
        if not self.active:
            return None
        if self.page_view_tracked:
            logger.debug("page view already tracked, skipping duplicate")
            return None
        self.page_view_tracked = True
        self.page.flags[PAGE_VIEW_FLAG] = True
        if self.excluded:
            logger.info("page excluded from tracking: %s", self.page.path)
            return None
        self.behavior.page_views += 1
        event = self._emit("page_view")
        self._snapshot()
        return event

    # ------------------------------------------------------------------
    # forms
    # ------------------------------------------------------------------
    def attach(self, form: FormSnapshot) -> bool:
        if form.dataset.get(ATTACHED_MARKER) == "true":
            return False
        form.dataset[ATTACHED_MARKER] = "true"
        logger.debug("attaching form handler to %s", form.id or "unnamed form")
        return True

    @guarded
    def forms_added(self, forms: Iterable[FormSnapshot]) -> int:
        return sum(1 for f in forms if self.attach(f))

    @guarded
    async def submit(self, form: FormSnapshot, modal: Optional[ModalContext] = None) -> Optional[DeliveryOutcome]:
        """
        Handle an intercepted submit. The host has already suppressed the
        default action; this always ends with a redirect to the thank-you page.
        Returns None when another submission is still in flight.
        """
        if not self.active:
            return None
        if self.submission_in_progress:
            logger.info("form submission already in progress, skipping duplicate")
            return None
        self.submission_in_progress = True
        self.attach(form)

        outcome: Optional[DeliveryOutcome] = None
        try:
            extracted = extract_contact_fields(form)
            form_type = classify(form, modal)
            logger.info("form %s submitted as %s", form.id or "unnamed form", form_type)

            submission = ContactSubmission(
                name=extracted["name"],
                phone=extracted["phone"],
                email=extracted["email"],
                form_type=form_type,
                source=self.page.path,
                session_id=self._sid(),
            )
            self._remember(extracted)
            self.behavior.form_interactions += 1
            self._emit("form_submit")

            outcome = await self.pipeline.deliver(submission)
        except Exception:
            logger.exception("error saving form submission")
        finally:
            self._spawn(self._release_submission_guard())

        await self._redirect()
        return outcome

    async def _release_submission_guard(self) -> None:
        await self.sleep(self.config.submission_reset_delay)
        self.submission_in_progress = False

    async def _redirect(self) -> None:
        try:
            await self.sleep(self.config.redirect_delay)
            self.navigate(self.config.thank_you_url)
        except Exception:
            logger.exception("redirect to %s failed", self.config.thank_you_url)

    @guarded
    async def capture_chat(self, data: Mapping[str, Any]) -> Optional[DeliveryOutcome]:
        if not self.active:
            return None
        extracted = extract_chat(data)
        if not any(extracted.values()):
            return None
        self._remember(extracted)
        submission = ContactSubmission(
            name=extracted["name"],
            phone=extracted["phone"],
            email=extracted["email"],
            form_type="chat",
            source=self.page.path,
            session_id=self._sid(),
        )
        return await self.pipeline.deliver(submission)

    @guarded
    def field_focused(self, form: FormSnapshot, f: FormField) -> Optional[Event]:
        if not self.active or not form.is_contact_form():
            return None
        return self._emit("form_focus", f.name or "unknown_field")

    @guarded
    def field_blurred(self, f: FormField) -> None:
        if not self.active:
            return
        kind = field_contact_kind(f)
        if kind:
            self.profile[kind] = f.value
        self._snapshot()

    def _remember(self, extracted: Mapping[str, Optional[str]]) -> None:
        # in-memory only; snapshots never carry contact data
        for k, v in extracted.items():
            if v:
                self.profile[k] = v

    # ------------------------------------------------------------------
    # behaviour
    # ------------------------------------------------------------------
    @guarded
    def scrolled(self, scroll_y: float, document_height: float, viewport_height: float) -> Optional[Event]:
        if not self.active:
            return None
        percent = scroll_percent(scroll_y, document_height, viewport_height)
        if percent >= 100 - SCROLL_BOTTOM_TOLERANCE:
            percent = 100
        if percent <= self.max_scroll:
            return None
        self.max_scroll = percent
        self.behavior.scroll_depth = percent
        self._snapshot()

        # 25 is latched, 50/75 fire on every new maximum inside their band
        if 25 <= percent < 50 and not self.scroll_25_tracked:
            self.scroll_25_tracked = True
            return self._emit("scroll_25")
        if 50 <= percent < 75:
            return self._emit("scroll_50")
        if 75 <= percent < 100:
            return self._emit("scroll_75")
        if percent >= 100:
            return self._emit("scroll_100")
        return None

    @guarded
    def clicked(self, target: ClickTarget) -> None:
        if not self.active:
            return
        if target.is_button_like():
            self.click_count += 1
            self.behavior.button_clicks = self.click_count
            self._emit("button_click", target.text.strip() or target.href or "button_click")
        if target.is_brochure_link():
            self._emit("brochure_download")

        phone = find_phone_in_text(target.text)
        if phone:
            self.profile["phone"] = phone
        self._snapshot()

    @guarded
    def unloading(self) -> Optional[Event]:
        """Best effort: the host may tear the page down before delivery finishes."""
        if not self.active or self.unload_tracked:
            return None
        self.unload_tracked = True
        seconds = int(math.floor(self.clock() - self.started_at + 0.5))
        self.behavior.time_on_site = seconds
        self._snapshot()
        return self._emit("time_on_page", f"{seconds} seconds")
