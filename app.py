"""Streamlit console for the internship placement core."""
from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from placement.config import ensure_dirs, load_settings
from placement.context import PlacementContext
from placement.errors import PlacementError
from placement.log import get_logger
from placement.models import (
    FilterConfig,
    NonNegotiables,
    PostingLevel,
    PostingStatus,
    RankingWeights,
)
from placement.roles import RepresentativeRole, Role, StaffRole, StudentRole, resolve_role, role_label
from placement.sample import sample_accounts, sample_postings
from placement.stores import CsvApplicationStore, CsvPostingStore, SystemClock

log = get_logger(__name__)

LEVELS: list[str] = [lvl.value for lvl in PostingLevel]

# ── Helpers ──────────────────────────────────────────────────────────────


def _context() -> PlacementContext:
    """One context per browser session."""
    ctx = st.session_state.get("_ctx")
    if ctx is None:
        settings = load_settings()
        ensure_dirs(settings)
        clock = SystemClock()
        postings = CsvPostingStore(settings.postings_path)
        if not postings.get_all():
            for posting in sample_postings(clock.today()).get_all():
                postings.add(posting)
        ctx = PlacementContext(
            postings,
            sample_accounts(),
            clock=clock,
            settings=settings,
            applications=CsvApplicationStore(settings.applications_path),
        )
        st.session_state["_ctx"] = ctx
        log.info("Session context created (%d postings)", len(postings.get_all()))
    return ctx


def _run(action, success: str) -> None:
    try:
        action()
        st.success(success)
    except PlacementError as exc:
        st.error(f"{exc.code}: {exc.message}")


def _posting_rows(ctx: PlacementContext, postings) -> list[dict]:
    return [
        {
            "ID": p.id,
            "Title": p.title,
            "Company": p.company_name,
            "Level": p.level.value,
            "Major": p.preferred_major or "-",
            "Closes": p.close_date.isoformat() if p.close_date else "-",
            "Slots left": ctx.slots.remaining(p),
            "Status": p.status.value,
            "Visible": p.visible,
        }
        for p in postings
    ]


# ── Page: Student ────────────────────────────────────────────────────────


def page_student(ctx: PlacementContext, role: StudentRole) -> None:
    me = role.profile
    tab_browse, tab_apps, tab_inbox = st.tabs(["Browse", "My Applications", "Inbox"])

    with tab_browse:
        with st.expander("Filters & ranking", expanded=False):
            c1, c2, c3 = st.columns(3)
            with c1:
                keyword = st.text_input("Keyword")
                company = st.text_input("Company")
            with c2:
                levels = st.multiselect("Levels", LEVELS)
                must_major = st.checkbox("Must match my major")
            with c3:
                recommend = st.checkbox("Recommendations", value=True)
                rank_kw = st.text_input("Ranking keyword")
        config = FilterConfig(
            keyword=keyword or None,
            company=company or None,
            level_set=frozenset(PostingLevel(v) for v in levels),
        )
        weights = RankingWeights(
            **{
                k: getattr(ctx.settings.default_weights, k)
                for k in ("major", "closing_soon", "level_fit", "keyword")
            },
            keyword_text=rank_kw or None,
        )
        ranked = ctx.list_ranked(
            me.id,
            filter_config=config,
            weights=weights,
            recommendations_enabled=recommend,
            non_negotiables=NonNegotiables(must_match_major=must_major),
        )
        rows = _posting_rows(ctx, [s.posting for s in ranked])
        for row, s in zip(rows, ranked):
            row["Score"] = s.score
        st.dataframe(rows, use_container_width=True, hide_index=True)

        ids = [s.posting.id for s in ranked]
        if ids:
            chosen = st.selectbox("Posting", ids)
            c1, c2 = st.columns(2)
            if c1.button("Apply", type="primary", use_container_width=True):
                _run(lambda: ctx.apply(me.id, chosen), f"Applied to {chosen}")
            if c2.button("Join waitlist", use_container_width=True):
                _run(lambda: ctx.join_waitlist(me.id, chosen), f"Waitlisted for {chosen}")

    with tab_apps:
        apps = ctx.ledger.for_student(me.id)
        if not apps:
            st.info("No applications yet.")
        for app in apps:
            c1, c2, c3 = st.columns([3, 1, 1])
            flag = " (withdrawal requested)" if app.withdrawal_requested else ""
            c1.markdown(f"**{app.id}** · {app.posting_id} · {app.status.value}{flag}")
            if c2.button("Accept", key=f"accept-{app.id}"):
                _run(lambda a=app: ctx.confirm(a.id), f"Placement {app.id} confirmed")
            if c3.button("Withdraw", key=f"withdraw-{app.id}"):
                _run(lambda a=app: ctx.request_withdrawal(a.id), "Withdrawal requested")

    with tab_inbox:
        for notice in ctx.inbox.for_user(me.id):
            st.markdown(f"- {notice.message}")


# ── Page: Representative ─────────────────────────────────────────────────


def page_rep(ctx: PlacementContext, role: RepresentativeRole) -> None:
    rep = role.rep
    mine = ctx.catalog.postings_for_rep(rep.id)
    st.dataframe(_posting_rows(ctx, mine), use_container_width=True, hide_index=True)

    with st.form("create_posting"):
        st.subheader("New posting")
        title = st.text_input("Title")
        description = st.text_area("Description")
        c1, c2, c3 = st.columns(3)
        level = c1.selectbox("Level", LEVELS)
        major = c2.text_input("Preferred major")
        capacity = c3.number_input("Slots", 1, ctx.settings.limits.max_capacity, 1)
        c1, c2 = st.columns(2)
        open_date = c1.date_input("Opens")
        close_date = c2.date_input("Closes")
        if st.form_submit_button("Create", type="primary"):
            _run(
                lambda: ctx.create_posting(
                    rep.id,
                    title=title,
                    description=description,
                    level=PostingLevel(level),
                    preferred_major=major or None,
                    capacity=int(capacity),
                    open_date=open_date,
                    close_date=close_date,
                ),
                "Posting submitted for review",
            )

    for posting in mine:
        with st.expander(f"{posting.id} · {posting.title}"):
            if st.button("Toggle visibility", key=f"vis-{posting.id}"):
                _run(lambda p=posting: ctx.toggle_visibility(p.id, rep.id), "Visibility updated")
            for app in ctx.ledger.for_posting(posting.id):
                c1, c2, c3 = st.columns([3, 1, 1])
                c1.markdown(f"{app.id} · {app.student_id} · {app.status.value}")
                if c2.button("Approve", key=f"ok-{app.id}"):
                    _run(lambda a=app: ctx.approve(a.id, rep.id), f"{app.id} approved")
                if c3.button("Reject", key=f"no-{app.id}"):
                    _run(lambda a=app: ctx.reject(a.id, rep.id), f"{app.id} rejected")


# ── Page: Staff ──────────────────────────────────────────────────────────


def page_staff(ctx: PlacementContext, role: StaffRole) -> None:
    tab_postings, tab_withdrawals = st.tabs(["Posting review", "Withdrawals"])

    with tab_postings:
        st.dataframe(_posting_rows(ctx, ctx.postings.get_all()), use_container_width=True, hide_index=True)
        c1, c2 = st.columns(2)
        if c1.button("Approve all pending", type="primary", use_container_width=True):
            count = ctx.bulk_approve()
            st.success(f"Approved {count} posting(s)")
        if c2.button("Undo last bulk action", use_container_width=True):
            st.info("Undone" if ctx.undo_last() else "Nothing to undo")
        pending = [p for p in ctx.postings.get_all() if p.status == PostingStatus.PENDING]
        for posting in pending:
            c1, c2, c3 = st.columns([3, 1, 1])
            c1.markdown(f"**{posting.id}** · {posting.title} · {posting.company_name}")
            if c2.button("Approve", key=f"papprove-{posting.id}"):
                _run(lambda p=posting: ctx.review_posting(p.id, True), f"{posting.id} approved")
            if c3.button("Reject", key=f"preject-{posting.id}"):
                _run(lambda p=posting: ctx.review_posting(p.id, False), f"{posting.id} rejected")

    with tab_withdrawals:
        requests = ctx.ledger.pending_withdrawals()
        if not requests:
            st.info("No withdrawal requests.")
        for app in requests:
            c1, c2, c3 = st.columns([3, 1, 1])
            c1.markdown(f"**{app.id}** · {app.student_id} → {app.posting_id} ({app.status.value})")
            if c2.button("Allow", key=f"wd-ok-{app.id}"):
                _run(lambda a=app: ctx.resolve_withdrawal(a.id, True), f"{app.id} withdrawn")
            if c3.button("Deny", key=f"wd-no-{app.id}"):
                _run(lambda a=app: ctx.resolve_withdrawal(a.id, False), "Request denied")


# ── Entry ────────────────────────────────────────────────────────────────


def _dispatch(ctx: PlacementContext, role: Role) -> None:
    match role:
        case StudentRole():
            page_student(ctx, role)
        case RepresentativeRole():
            page_rep(ctx, role)
        case StaffRole():
            page_staff(ctx, role)


def main() -> None:
    st.set_page_config(page_title="Internship Placement", layout="wide")
    ctx = _context()

    with st.sidebar:
        user_id = st.text_input("User ID", value=st.session_state.get("_user", ""))
        if st.button("Sign in", use_container_width=True):
            st.session_state["_user"] = user_id.strip()

    user = st.session_state.get("_user")
    if not user:
        st.info("Sign in with a student, representative or staff ID.")
        return
    try:
        role = resolve_role(ctx.accounts, user)
    except PlacementError as exc:
        st.error(exc.message)
        return

    st.header(role_label(role))
    _dispatch(ctx, role)


main()
