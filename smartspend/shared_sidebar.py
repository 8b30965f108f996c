"""Shared sidebar and session helpers for the multi-page app.

Every page calls :func:`render_shared_sidebar`, which handles sign-in and
makes sure ``st.session_state`` holds the signed-in user's expenses and
budgets.  Session keys are accessed with item syntax so the helpers also
work against a plain dict in tests.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

import streamlit as st

from . import db
from .models import SessionUser
from .reconciliation import Reconciler

logger = logging.getLogger(__name__)

USER_KEY = 'user'
EXPENSES_KEY = 'expenses'
BUDGETS_KEY = 'budgets'
STATE_OWNER_KEY = 'state_owner'

SESSION_KEYS = (USER_KEY, EXPENSES_KEY, BUDGETS_KEY, STATE_OWNER_KEY)


def user_from_name(name: str) -> SessionUser:
    """Build a session user whose id is stable for the same display name."""
    cleaned = ' '.join(name.split())
    if not cleaned:
        raise ValueError("Name cannot be empty")
    digest = hashlib.sha256(cleaned.lower().encode('utf-8')).hexdigest()[:16]
    return SessionUser(id=digest, name=cleaned)


def current_user() -> Optional[SessionUser]:
    return st.session_state.get(USER_KEY)


def get_reconciler() -> Reconciler:
    return Reconciler(db.get_store(), current_user)


def ensure_app_state(reconciler: Reconciler, force: bool = False) -> None:
    """Load expenses and budgets into the session once per signed-in user."""
    user = current_user()
    owner = user.id if user else None
    state = st.session_state
    if not force and EXPENSES_KEY in state and state.get(STATE_OWNER_KEY) == owner:
        return
    app_state = reconciler.fetch_all()
    state[EXPENSES_KEY] = app_state.expenses
    state[BUDGETS_KEY] = app_state.budgets
    state[STATE_OWNER_KEY] = owner
    logger.info("Loaded %d expenses for %s", len(app_state.expenses), owner or 'anonymous session')


def sign_in(name: str) -> SessionUser:
    user = user_from_name(name)
    st.session_state[USER_KEY] = user
    return user


def sign_out() -> None:
    for key in SESSION_KEYS:
        if key in st.session_state:
            del st.session_state[key]


def rerun() -> None:
    """Trigger a rerun using whichever API the installed Streamlit provides."""
    rerun_fn = getattr(st, 'rerun', None) or getattr(st, 'experimental_rerun', None)
    if rerun_fn is not None:
        rerun_fn()


def render_shared_sidebar() -> Dict[str, Any]:
    """Render shared sidebar elements available on all pages.

    Returns:
        Dict with keys: 'user', 'reconciler', 'expenses', 'budgets'
    """
    reconciler = get_reconciler()
    st.sidebar.title("💸 SmartSpend")

    user = current_user()
    if user is None:
        with st.sidebar.form("sign_in_form"):
            name = st.text_input("Your name", placeholder="e.g. Asha")
            submitted = st.form_submit_button("Sign in")
        if submitted:
            if name.strip():
                sign_in(name)
                rerun()
            else:
                st.sidebar.error("Please enter a name to sign in.")
    else:
        st.sidebar.caption("Signed in as")
        st.sidebar.subheader(user.name)
        if st.sidebar.button("🚪 Sign out"):
            sign_out()
            rerun()

    ensure_app_state(reconciler)
    return {
        'user': current_user(),
        'reconciler': reconciler,
        'expenses': st.session_state[EXPENSES_KEY],
        'budgets': st.session_state[BUDGETS_KEY],
    }
