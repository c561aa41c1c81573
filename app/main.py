"""
Streamlit Frontend for My Halal Flow

The dashboard a single user opens to follow their cash, goals,
assets and planned operations.

DESIGN PRINCIPLES:
1. The UI never computes balances itself; every figure comes from the engine
2. Every mutation is one engine call followed by a rerun
3. Completing a goal, selling an asset or validating a planned
   operation always asks for the real amount first
4. Clear error messages next to the form that caused them
"""

import asyncio
from datetime import date, datetime, time

import pandas as pd
import streamlit as st

from src.config import validate_all_settings
from src.ledger import LedgerError, ValidationError
from src.models.ledger import (
    GOAL_COLORS,
    AssetCategory,
    AssetStatus,
    GoalIcon,
    GoalStatus,
    LinkKind,
    TransactionType,
    money,
)
from src.orchestrator import LedgerEngine, create_ledger_engine
from src.services.storage import PersistenceError
from src.validation import LedgerValidator


# Page configuration
st.set_page_config(
    page_title="My Halal Flow",
    page_icon="🌿",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .settlement-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_engine() -> LedgerEngine:
    """Get or create the ledger engine (cached)."""
    return create_ledger_engine()


def format_money(amount) -> str:
    return f"{money(amount):,.0f} €".replace(",", " ")


def as_datetime(day: date) -> datetime:
    """Form dates carry no time; today's entries keep the current time."""
    if day == date.today():
        return datetime.now()
    return datetime.combine(day, time())


def run_mutation(coro, success: str) -> bool:
    """Run an engine mutation and report the outcome."""
    try:
        run_async(coro)
    except ValidationError as e:
        st.error(LedgerValidator().get_user_friendly_summary(e))
        return False
    except LedgerError as e:
        st.error(f"❌ {e}")
        return False
    except PersistenceError as e:
        st.error(f"💾 Storage error, nothing was saved: {e}")
        return False
    st.session_state.flash = success
    st.rerun()
    return True


def main():
    """Main application entry point."""
    engine = get_engine()

    try:
        snapshot = run_async(engine.snapshot())
    except PersistenceError as e:
        st.error(f"💾 Could not load your data: {e}")
        st.stop()

    if not snapshot.onboarded:
        render_onboarding_page(engine)
        return

    flash = st.session_state.pop("flash", None)
    if flash:
        st.success(flash)

    if run_async(engine.settlement_due(snapshot)):
        render_settlement_prompt(engine, snapshot)

    # Sidebar navigation
    st.sidebar.title(f"🌿 Salam, {snapshot.settings.name}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "💸 Transactions",
            "🎯 Goals",
            "🚗 Assets",
            "📅 Planning",
            "📈 History",
            "⚙️ Settings",
        ],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(engine, snapshot)
    elif page == "💸 Transactions":
        render_transactions_page(engine, snapshot)
    elif page == "🎯 Goals":
        render_goals_page(engine, snapshot)
    elif page == "🚗 Assets":
        render_assets_page(engine, snapshot)
    elif page == "📅 Planning":
        render_planning_page(engine, snapshot)
    elif page == "📈 History":
        render_history_page(engine, snapshot)
    elif page == "⚙️ Settings":
        render_settings_page(engine, snapshot)


def render_onboarding_page(engine: LedgerEngine):
    """First launch: configure the user's space."""
    st.title("🌿 Bienvenue sur My Halal Flow")
    st.markdown("Let's set up your space. You can change these figures later.")

    with st.form("onboarding"):
        name = st.text_input("Your name")
        balance = st.number_input("Current bank balance (€)", value=0.0, step=50.0)
        income = st.number_input("Monthly income (€)", min_value=0.0, value=0.0, step=50.0)
        expenses = st.number_input("Monthly fixed expenses (€)", min_value=0.0, value=0.0, step=50.0)
        submitted = st.form_submit_button("Start", type="primary")

    if submitted:
        run_mutation(
            engine.onboard(name, balance=balance, monthly_income=income, monthly_expenses=expenses),
            "Espace configuré avec succès !",
        )


def render_settlement_prompt(engine: LedgerEngine, snapshot):
    """New month: ask for the real bank balance."""
    st.markdown(f"""
    <div class="settlement-box">
        <h4>🗓️ New month, quick check</h4>
        <p>According to your ledger you have <strong>{format_money(snapshot.settings.balance)}</strong>.
        What does your bank say?</p>
    </div>
    """, unsafe_allow_html=True)

    with st.form("settlement"):
        reported = st.number_input(
            "Real balance (€)",
            value=money(snapshot.settings.balance),
            step=10.0,
        )
        submitted = st.form_submit_button("Confirm balance", type="primary")

    if submitted:
        run_mutation(engine.confirm_settlement(reported), "Solde validé !")


def render_dashboard_page(engine: LedgerEngine, snapshot):
    """Headline figures and the 12-month projection."""
    st.title("📊 Dashboard")

    summary = run_async(engine.summary(snapshot))
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Balance", format_money(summary["balance"]))
    with col2:
        st.metric("Monthly savings", format_money(summary["monthly_savings"]))
    with col3:
        st.metric("Active assets", format_money(summary["total_active_assets"]))
    with col4:
        st.metric("Net worth", format_money(summary["net_worth"]))

    st.markdown("### Projection")
    points = run_async(engine.projection(snapshot))
    df = pd.DataFrame([p.to_presentation() for p in points])
    if not df.empty:
        df["period"] = df["name"] + " " + df["year"].astype(str)
        chart = df.set_index("period")[["realBalance", "potentialBalance"]]
        chart.columns = ["Real", "Potential"]
        st.line_chart(chart)
        st.caption(
            "Real: balance plus monthly savings. "
            "Potential: also counts active assets and planned operations."
        )

    active_goals = [g for g in snapshot.goals if g.status == GoalStatus.ACTIVE]
    if active_goals:
        st.markdown("### Goals in progress")
        for goal in active_goals:
            progress = min(1.0, max(0.0, money(snapshot.settings.balance) / money(goal.target_amount)))
            st.progress(progress, text=f"{goal.name}: {format_money(goal.target_amount)}")


def render_transactions_page(engine: LedgerEngine, snapshot):
    """Record and delete transactions."""
    st.title("💸 Transactions")

    with st.form("transaction"):
        col1, col2 = st.columns(2)
        with col1:
            tx_type = st.selectbox(
                "Type",
                options=list(TransactionType),
                format_func=lambda t: "Income" if t == TransactionType.IN else "Expense",
            )
            amount = st.number_input("Amount (€)", min_value=0.0, step=5.0)
        with col2:
            label = st.text_input("Label")
            day = st.date_input("Date", value=date.today())
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        run_mutation(
            engine.record_transaction({
                "type": tx_type,
                "amount": amount,
                "label": label,
                "date": as_datetime(day),
            }),
            "Transaction ajoutée",
        )

    st.markdown("---")
    rows = snapshot.to_presentation()["transactions"]
    if not rows:
        st.info("No transactions yet.")
        return

    for row in rows:
        col1, col2, col3 = st.columns([4, 2, 1])
        sign = "+" if row["type"] == TransactionType.IN.value else "-"
        col1.markdown(f"**{row['label']}**  \n{row['date'][:10]}")
        col2.markdown(f"{sign}{format_money(row['amount'])}")
        if col3.button("🗑️", key=f"del-tx-{row['id']}"):
            run_mutation(engine.delete_transaction(row["id"]), "Transaction supprimée")


def render_pending_confirmation(engine: LedgerEngine):
    """Second step of a completion: enter the real amount."""
    pending = st.session_state.get("pending")
    if pending is None:
        return

    with st.form("final-amount"):
        st.markdown(pending.prompt.replace("\n", "  \n"))
        amount = st.number_input(
            "Amount (€)",
            min_value=0.0,
            value=money(pending.suggested_amount),
            step=5.0,
        )
        col1, col2 = st.columns(2)
        confirmed = col1.form_submit_button("Confirm", type="primary")
        cancelled = col2.form_submit_button("Cancel")

    if cancelled:
        st.session_state.pending = None
        st.rerun()
    if confirmed:
        st.session_state.pending = None
        run_mutation(engine.confirm_final_amount(pending, amount), pending.label)


def start_completion(engine: LedgerEngine, kind: LinkKind, target_id: str):
    try:
        st.session_state.pending = run_async(engine.request_final_amount(kind, target_id))
    except LedgerError as e:
        st.error(f"❌ {e}")
        return
    st.rerun()


def render_goals_page(engine: LedgerEngine, snapshot):
    """Savings goals."""
    st.title("🎯 Goals")
    render_pending_confirmation(engine)

    with st.expander("➕ New goal"):
        with st.form("goal"):
            name = st.text_input("Name")
            target = st.number_input("Target (€)", min_value=0.0, step=50.0)
            color = st.selectbox("Color", options=list(GOAL_COLORS), index=len(GOAL_COLORS) - 1)
            icon = st.selectbox(
                "Icon",
                options=list(GoalIcon),
                index=list(GoalIcon).index(GoalIcon.TARGET),
                format_func=lambda i: i.value,
            )
            submitted = st.form_submit_button("Save", type="primary")
        if submitted:
            run_mutation(
                engine.upsert_goal({"name": name, "target_amount": target, "color": color, "icon_key": icon}),
                "Objectif créé",
            )

    for goal in snapshot.goals:
        col1, col2, col3 = st.columns([4, 1, 1])
        done = goal.status == GoalStatus.COMPLETED
        col1.markdown(f"{'✅' if done else '🎯'} **{goal.name}**: {format_money(goal.target_amount)}")
        if not done and col2.button("Bought", key=f"done-goal-{goal.id}"):
            start_completion(engine, LinkKind.GOAL, goal.id)
        if col3.button("🗑️", key=f"del-goal-{goal.id}"):
            run_mutation(engine.delete_goal(goal.id), "Objectif supprimé")


def render_assets_page(engine: LedgerEngine, snapshot):
    """Things the user owns and might sell."""
    st.title("🚗 Assets")
    render_pending_confirmation(engine)

    with st.expander("➕ New asset"):
        with st.form("asset"):
            name = st.text_input("Name")
            value = st.number_input("Estimated value (€)", min_value=0.0, step=50.0)
            category = st.selectbox("Category", options=list(AssetCategory), format_func=lambda c: c.value)
            submitted = st.form_submit_button("Save", type="primary")
        if submitted:
            run_mutation(
                engine.upsert_asset({"name": name, "value": value, "category": category}),
                "Bien ajouté au patrimoine",
            )

    for asset in snapshot.assets:
        col1, col2, col3 = st.columns([4, 1, 1])
        sold = asset.status == AssetStatus.SOLD
        col1.markdown(
            f"{'🏷️' if sold else '📦'} **{asset.name}** ({asset.category.value}): {format_money(asset.value)}"
        )
        if not sold and col2.button("Sell", key=f"sell-asset-{asset.id}"):
            start_completion(engine, LinkKind.ASSET, asset.id)
        if col3.button("🗑️", key=f"del-asset-{asset.id}"):
            run_mutation(engine.delete_asset(asset.id), "Bien supprimé")


def render_planning_page(engine: LedgerEngine, snapshot):
    """Planned incomes and expenses."""
    st.title("📅 Planning")
    render_pending_confirmation(engine)

    with st.expander("➕ Plan an operation"):
        with st.form("future-operation"):
            label = st.text_input("Label")
            amount = st.number_input("Amount (€)", min_value=0.0, step=50.0)
            op_type = st.selectbox(
                "Type",
                options=list(TransactionType),
                format_func=lambda t: "Income" if t == TransactionType.IN else "Expense",
            )
            day = st.date_input("Expected on", value=date.today())
            submitted = st.form_submit_button("Save", type="primary")
        if submitted:
            run_mutation(
                engine.upsert_future_operation({
                    "label": label,
                    "amount": amount,
                    "type": op_type,
                    "date": datetime.combine(day, time()),
                }),
                "Rentrée planifiée !" if op_type == TransactionType.IN else "Dépense planifiée !",
            )

    operations = sorted(snapshot.future_operations, key=lambda o: o.date)
    for op in operations:
        col1, col2, col3 = st.columns([4, 1, 1])
        sign = "+" if op.type == TransactionType.IN else "-"
        status = "✅" if op.received else "⏳"
        col1.markdown(f"{status} **{op.label}** ({op.date:%d/%m/%Y}): {sign}{format_money(op.amount)}")
        if not op.received and col2.button("Validate", key=f"done-op-{op.id}"):
            start_completion(engine, LinkKind.FUTURE_OPERATION, op.id)
        if col3.button("🗑️", key=f"del-op-{op.id}"):
            run_mutation(engine.delete_future_operation(op.id), "Planification supprimée")


def render_history_page(engine: LedgerEngine, snapshot):
    """Balance over time, rebuilt from the ledger."""
    st.title("📈 History")

    points = run_async(engine.history(snapshot))
    if len(points) < 2:
        st.info("Record a few transactions to see your balance history.")
        return

    df = pd.DataFrame([p.to_presentation() for p in points])
    df["date"] = pd.to_datetime(df["date"].replace("now", pd.Timestamp.now().isoformat()))
    st.line_chart(df.set_index("date")["val"])


def render_settings_page(engine: LedgerEngine, snapshot):
    """Profile figures, storage status and reset."""
    st.title("⚙️ Settings")

    settings = snapshot.settings
    with st.form("settings"):
        name = st.text_input("Name", value=settings.name)
        income = st.number_input("Monthly income (€)", min_value=0.0, value=money(settings.monthly_income))
        expenses = st.number_input("Monthly fixed expenses (€)", min_value=0.0, value=money(settings.monthly_expenses))
        submitted = st.form_submit_button("Save", type="primary")

    if submitted:
        run_mutation(
            engine.update_settings(name=name, monthly_income=income, monthly_expenses=expenses),
            "Paramètres enregistrés",
        )

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    for key in ("app", "ledger", "storage", "google_sheets"):
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {key.replace('_', ' ').title()}")
        else:
            st.error(f"❌ {key.replace('_', ' ').title()} - {status.get(f'{key}_error', 'Not configured')}")

    st.markdown("---")
    st.markdown("### Danger zone")
    confirm = st.checkbox("I understand everything will be lost")
    if st.button("Reset everything", disabled=not confirm):
        run_mutation(engine.reset(), "Tout a été effacé")


if __name__ == "__main__":
    main()
