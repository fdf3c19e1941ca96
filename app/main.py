"""
Streamlit Frontend for Subscription Tracker

The screens a signed-in user works with: the dashboard, the subscription
list and forms, reminder settings and data export.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions

The UI holds no business logic. Every number shown here comes from the
orchestrator flows, which get the signed-in user through a SessionContext.
"""

import asyncio
from datetime import date

import streamlit as st

from subtracker.config import get_settings, validate_all_settings
from subtracker.core import InvalidDate, subscription_monthly_cost
from subtracker.models.subscription import (
    SUGGESTED_CATEGORIES,
    BillingCycle,
    ExportFormat,
    NotificationChannel,
    NotificationPreferencePatch,
    SessionContext,
    SubscriptionPatch,
    Theme,
    UserProfile,
)
from subtracker.orchestrator import AppComponents, create_app_components
from subtracker.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Subscription Tracker",
    page_icon="📅",
    layout="wide",
    initial_sidebar_state="expanded",
)

LIGHT_CSS = """
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .upcoming-box {
        padding: 12px 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 6px 0;
    }
</style>
"""

DARK_CSS = """
<style>
    .stApp {
        background-color: #0e1117;
        color: #fafafa;
    }
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .upcoming-box {
        padding: 12px 20px;
        background-color: #3b3415;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 6px 0;
    }
</style>
"""


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def money(amount) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def current_profile():
    """
    The signed-in user, or None if nobody is signed in.

    With authentication disabled every visitor is the local dev user.
    """
    auth = get_settings().auth
    if not auth.enabled:
        return UserProfile(
            uid=auth.dev_user_id,
            email=auth.dev_user_email,
            display_name=auth.dev_user_name,
        )

    if not st.user.is_logged_in:
        return None

    return UserProfile(
        uid=st.user.get("sub") or st.user.get("email"),
        email=st.user.get("email", ""),
        display_name=st.user.get("name", ""),
        photo_url=st.user.get("picture"),
    )


def get_session(components: AppComponents):
    """Build the SessionContext once per browser session."""
    profile = current_profile()
    if profile is None:
        st.session_state.pop("session", None)
        return None

    session = st.session_state.get("session")
    if session is None or session.owner_id != profile.uid:
        session = SessionContext(user=profile)
        st.session_state.session = session
        run_async(components.audit_logger.log_session(profile.uid, signed_in=True))

    return session


def render_login_page():
    st.title("📅 Subscription Tracker")
    st.markdown("Keep track of what you pay for, and when.")
    if st.button("Sign in"):
        st.login(get_settings().auth.provider)


def main():
    """Main application entry point."""
    components = get_components()

    session = get_session(components)
    if session is None:
        render_login_page()
        return

    st.markdown(DARK_CSS if session.theme == Theme.DARK else LIGHT_CSS, unsafe_allow_html=True)

    # Sidebar navigation
    st.sidebar.title("📅 Subscription Tracker")
    st.sidebar.caption(session.user.display_name or session.user.email)
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Subscriptions", "🔔 Reminders", "📤 Export", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if get_settings().auth.enabled and st.sidebar.button("Sign out"):
        run_async(components.audit_logger.log_session(session.owner_id, signed_in=False))
        st.session_state.pop("session", None)
        st.logout()

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components, session)
    elif page == "🧾 Subscriptions":
        render_subscriptions_page(components, session)
    elif page == "🔔 Reminders":
        render_reminders_page(components, session)
    elif page == "📤 Export":
        render_export_page(components, session)
    elif page == "⚙️ Settings":
        render_settings_page(components, session)


def render_dashboard_page(components: AppComponents, session: SessionContext):
    """Render the spending dashboard."""
    st.title("📊 Dashboard")

    summary, report = run_async(components.dashboard.build(session))

    col1, col2, col3 = st.columns(3)
    col1.metric("Monthly spend", money(summary.total_monthly))
    col2.metric("Yearly projection", money(summary.yearly_projection))
    col3.metric("Subscriptions", summary.subscription_count)

    if summary.by_category:
        st.markdown("### Spending by category")
        st.bar_chart(
            {
                "Category": list(summary.by_category.keys()),
                "Monthly": [float(v) for v in summary.by_category.values()],
            },
            x="Category",
            y="Monthly",
        )

    st.markdown(f"### Due in the next {report.window_days} days")
    if not report.payments:
        st.info("Nothing due in this window.")
    for payment in report.payments:
        when = "today" if payment.days_until == 0 else f"in {payment.days_until} day(s)"
        st.markdown(
            f"""
            <div class="upcoming-box">
                <strong>{payment.subscription.name}</strong>:
                {money(payment.subscription.price)} due {when} ({payment.due_date.isoformat()})
            </div>
            """,
            unsafe_allow_html=True,
        )

    for warning in report.warnings:
        st.warning(warning)


def render_subscription_form(prefix: str, defaults=None):
    """Shared add/edit form fields. Returns the raw form values."""
    defaults = defaults or {}
    categories = list(SUGGESTED_CATEGORIES)
    category_default = defaults.get("category", categories[0])
    if category_default not in categories:
        categories.append(category_default)

    cycles = list(BillingCycle)

    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Name", value=defaults.get("name", ""), key=f"{prefix}_name")
        price = st.text_input(
            "Price",
            value=str(defaults.get("price", "")),
            key=f"{prefix}_price",
        )
        cycle = st.selectbox(
            "Billing cycle",
            options=cycles,
            index=cycles.index(defaults.get("cycle", BillingCycle.MONTHLY)),
            format_func=lambda c: c.value.title(),
            key=f"{prefix}_cycle",
        )
    with col2:
        category = st.selectbox(
            "Category",
            options=categories,
            index=categories.index(category_default),
            key=f"{prefix}_category",
        )
        payment_date = st.date_input(
            "Next payment date",
            value=defaults.get("payment_date", date.today()),
            key=f"{prefix}_payment_date",
        )
        notes = st.text_area("Notes", value=defaults.get("notes") or "", key=f"{prefix}_notes")

    return {
        "name": name,
        "price": price,
        "cycle": cycle,
        "category": category,
        "payment_date": payment_date,
        "notes": notes or None,
    }


def render_subscriptions_page(components: AppComponents, session: SessionContext):
    """Render the subscription list with add, edit and delete."""
    st.title("🧾 Subscriptions")
    flow = components.subscriptions

    with st.expander("➕ Add subscription"):
        with st.form("add_subscription", clear_on_submit=True):
            form = render_subscription_form("add")
            submitted = st.form_submit_button("Save")

        if submitted:
            subscription, validation = run_async(flow.create_subscription(session, form))
            if subscription is None:
                st.error(flow.describe_validation(validation))
            else:
                st.success(f"✅ Saved {subscription.name}")
                for warning in validation.warnings:
                    st.warning(warning)

    subscriptions = run_async(flow.list_subscriptions(session))
    if not subscriptions:
        st.info("No subscriptions yet. Use 'Add subscription' above to create one.")
        return

    for subscription in subscriptions:
        monthly = subscription_monthly_cost(subscription)
        header = (
            f"{subscription.name} · {money(subscription.price)} "
            f"{subscription.cycle.value} · {money(monthly)}/month"
        )
        with st.expander(header):
            st.caption(f"Category: {subscription.category}")
            if subscription.notes:
                st.markdown(subscription.notes)

            try:
                schedule = run_async(flow.payment_schedule(session, subscription.id))
                st.markdown(
                    "**Next payments:** " + ", ".join(d.isoformat() for d in schedule)
                )
            except InvalidDate as e:
                st.warning(f"⚠️ {e}. Set a payment date below to fix it.")

            with st.form(f"edit_{subscription.id}"):
                form = render_subscription_form(
                    f"edit_{subscription.id}",
                    defaults=subscription.model_dump(),
                )
                col1, col2 = st.columns(2)
                save = col1.form_submit_button("Save changes")
                delete = col2.form_submit_button("🗑️ Delete")

            try:
                if save:
                    patch = SubscriptionPatch(**form)
                    updated, validation = run_async(
                        flow.update_subscription(session, subscription.id, patch)
                    )
                    if updated is None:
                        st.error(flow.describe_validation(validation))
                    else:
                        st.success("✅ Changes saved")
                        st.rerun()
                if delete:
                    run_async(flow.delete_subscription(session, subscription.id))
                    st.success(f"Deleted {subscription.name}")
                    st.rerun()
            except (StorageError, ValueError) as e:
                st.error(f"Error: {str(e)}")


def render_reminders_page(components: AppComponents, session: SessionContext):
    """Render notification preferences and a manual reminder run."""
    st.title("🔔 Reminders")
    flow = components.preferences

    preferences = run_async(flow.list_preferences(session))
    configured = {p.channel for p in preferences}

    for preference in preferences:
        with st.form(f"pref_{preference.id}"):
            st.markdown(f"**{preference.channel.value.title()}**")
            days = st.number_input(
                "Days in advance",
                min_value=1,
                max_value=30,
                value=preference.days_in_advance,
            )
            enabled = st.checkbox("Enabled", value=preference.enabled)
            col1, col2 = st.columns(2)
            save = col1.form_submit_button("Save")
            remove = col2.form_submit_button("Remove")

        try:
            if save:
                run_async(flow.update_preference(
                    session,
                    preference.id,
                    NotificationPreferencePatch(days_in_advance=int(days), enabled=enabled),
                ))
                st.rerun()
            if remove:
                run_async(flow.delete_preference(session, preference))
                st.rerun()
        except StorageError as e:
            st.error(f"Error: {str(e)}")

    available = [c for c in NotificationChannel if c not in configured]
    if available:
        st.markdown("### Add a channel")
        with st.form("add_preference"):
            channel = st.selectbox(
                "Channel",
                options=available,
                format_func=lambda c: c.value.title(),
            )
            days = st.number_input("Days in advance", min_value=1, max_value=30, value=3)
            chat_id = st.text_input("Telegram chat id (Telegram only)")
            if st.form_submit_button("Add"):
                try:
                    run_async(flow.add_preference(
                        session,
                        channel,
                        days_in_advance=int(days),
                        telegram_chat_id=chat_id or None,
                    ))
                    st.rerun()
                except StorageError as e:
                    st.error(f"Error: {str(e)}")

    st.markdown("---")
    if st.button("Send reminders now"):
        outcomes = run_async(components.reminders.run(session))
        if not outcomes:
            st.info("No reminders to send.")
        for outcome in outcomes:
            if outcome.delivered:
                st.success(f"{outcome.channel.value}: {outcome.message}")
            else:
                st.error(f"{outcome.channel.value}: {outcome.error or 'delivery failed'}")


def render_export_page(components: AppComponents, session: SessionContext):
    """Render the export page."""
    st.title("📤 Export")
    st.markdown("Download all your subscriptions.")

    export_format = st.radio(
        "Format",
        options=list(ExportFormat),
        format_func=lambda f: f.value.upper(),
        horizontal=True,
    )

    artifact = run_async(components.exports.export(session, export_format))
    st.caption(f"{artifact.record_count} subscription(s)")
    st.download_button(
        "⬇️ Download",
        data=artifact.content,
        file_name=artifact.filename,
        mime=artifact.media_type,
    )


def render_settings_page(components: AppComponents, session: SessionContext):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Appearance")
    dark = st.toggle("Dark theme", value=session.theme == Theme.DARK)
    theme = Theme.DARK if dark else Theme.LIGHT
    if theme != session.theme:
        st.session_state.session = session.model_copy(update={"theme": theme})
        st.rerun()

    st.markdown("### Connection Status")
    st.markdown(f"Storage backend: **{components.backend}**")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Authentication", "auth"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("### Recent Activity")
    events = run_async(components.audit_logger.recent_activity(session.owner_id))
    if not events:
        st.info("No activity recorded yet.")
    for event in events:
        line = f"`{event.timestamp:%Y-%m-%d %H:%M}` {event.description}"
        if event.error_message:
            line += f" ({event.error_message})"
        st.markdown(line)

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
