"""
app.py
Streamlit club dues & accounts app.
Run: streamlit run app.py
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pandas as pd
import streamlit as st

import auth
import balances
import db
import dues
import events
import ledger
import members
import utils
from config import configure_logging, get_settings
from models import (
    DUES_STATUS_LABELS,
    DUES_STATUSES,
    EXPENSE_TYPES,
    INCOME_TYPES,
    MONTHS,
    ROLES,
    ClubError,
)

settings = get_settings()
st.set_page_config(page_title=settings.club_name, layout="wide")


def init_once():
    configure_logging()
    db.init_db()
    auth.init_users()


def require_login():
    if "user" not in st.session_state:
        st.session_state.user = None
    if "year" not in st.session_state:
        st.session_state.year = date.today().year


def current_user():
    return st.session_state.user


def logout():
    st.session_state.user = None
    st.success("Logged out.")


def login_screen():
    st.title(f"🔐 {settings.club_name}")

    col1, col2 = st.columns([1, 1])
    with col1:
        user_id = st.text_input("User id")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            user = auth.login(user_id, password)
            if user:
                st.session_state.user = user
                st.rerun()
            else:
                st.error("Invalid user id or password.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            f"- user id: **{auth.DEFAULT_ADMIN_ID}**\n"
            f"- password: **{auth.DEFAULT_ADMIN_PASSWORD}**\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        if new1 != new2:
            st.error("Passwords do not match.")
            return
        try:
            auth.change_password(current_user().id, new1)
        except ClubError as e:
            st.error(str(e))
            return
        st.success("Password updated. You can continue.")
        st.rerun()


def run_action(action, success: str) -> bool:
    """Run a service call, show the domain error if it fails."""
    try:
        action()
    except ClubError as e:
        st.error(str(e))
        return False
    st.success(success)
    return True


def year_selector():
    c1, c2, c3 = st.sidebar.columns([1, 2, 1])
    if c1.button("◀"):
        st.session_state.year -= 1
        st.rerun()
    c2.markdown(f"### {st.session_state.year}")
    if c3.button("▶"):
        st.session_state.year += 1
        st.rerun()


# ---------- Pages ----------

def dashboard_page():
    year = st.session_state.year
    st.header(f"📊 Dashboard {year}")

    data = balances.yearly_data(year)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Carried over", utils.format_currency(data.opening_balance))
    c2.metric("Income", utils.format_currency(data.total_income))
    c3.metric("Expenses", utils.format_currency(data.total_expense))
    c4.metric("Balance", utils.format_currency(data.closing_balance))

    st.subheader("Monthly balance")
    df = utils.monthly_balance_frame(data)
    st.bar_chart(df.set_index("month")[["income", "expense"]])
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    names = members.member_names()
    left, right = st.columns(2)
    with left:
        st.subheader("Recent income")
        st.dataframe(
            utils.records_frame(ledger.recent_transactions("income", 5), names),
            use_container_width=True,
            hide_index=True,
        )
    with right:
        st.subheader("Recent expenses")
        st.dataframe(
            utils.records_frame(ledger.recent_transactions("expense", 5), names),
            use_container_width=True,
            hide_index=True,
        )


def record_form(kind: str, existing=None):
    types = INCOME_TYPES if kind == "income" else EXPENSE_TYPES
    roster = members.list_members()
    member_options = {"(none)": None, **{f"{m.name} ({m.id})": m.id for m in roster}}
    labels = list(member_options.keys())
    member_index = 0
    if existing and existing.member_id in member_options.values():
        member_index = list(member_options.values()).index(existing.member_id)

    key = f"{kind}_{existing.id if existing else 'new'}"
    col1, col2, col3 = st.columns(3)
    with col1:
        record_date = st.date_input(
            "Date", value=(utils.parse_iso(existing.date) if existing else date.today()), key=f"{key}_date"
        ).isoformat()
        record_type = st.selectbox(
            "Type", types, index=(types.index(existing.type) if existing else 0), key=f"{key}_type"
        )
    with col2:
        member_label = st.selectbox("Member", labels, index=member_index, key=f"{key}_member")
        amount = st.text_input("Amount", value=(str(existing.amount) if existing else ""), key=f"{key}_amount")
    with col3:
        note = st.text_input("Note", value=((existing.note or "") if existing else ""), key=f"{key}_note")

    errors = utils.validate_record_inputs(record_date, record_type, amount, types)
    if amount and errors:
        for e in errors:
            st.error(e)

    if not st.button("Save", type="primary", disabled=bool(errors), key=f"{key}_save"):
        return

    member_id = member_options[member_label]
    user = current_user()
    if existing:
        record = replace(existing, date=record_date, type=record_type, amount=int(amount),
                         member_id=member_id, note=note)
        if kind == "income":
            action = lambda: dues.update_income(record, actor=user)  # noqa: E731
        else:
            action = lambda: ledger.update_expense(record, actor=user)  # noqa: E731
        ok = run_action(action, "Record updated.")
    else:
        ok = run_action(
            lambda: ledger.add_record(kind, record_date, record_type, int(amount), actor=user,
                                      member_id=member_id, note=note),
            "Record added.",
        )
    if ok:
        st.session_state[f"edit_{kind}_id"] = None
        st.rerun()


def ledger_page(kind: str):
    year = st.session_state.year
    title = "💰 Income" if kind == "income" else "🧾 Expenses"
    st.header(f"{title} {year}")

    records = ledger.list_records(kind, year=year)
    df = utils.records_frame(records, members.member_names())
    st.metric("Total", utils.format_currency(sum(r.amount for r in records)))
    st.dataframe(df.drop(columns=["id"]), use_container_width=True, hide_index=True)
    if not df.empty:
        st.download_button(
            f"Download {kind}_{year}.csv",
            data=utils.frame_to_csv_bytes(df),
            file_name=f"{kind}_{year}.csv",
            mime="text/csv",
        )

    if not auth.can_edit(current_user()):
        st.caption("Read-only: only the admin and the treasurer can change the ledgers.")
        return

    st.divider()

    by_label = {f"{r.date} · {r.type} · {r.amount:,} ({r.id[:8]})": r for r in records}
    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select record")
        selected = st.selectbox("Record", ["(none)"] + list(by_label.keys()), key=f"{kind}_select")
    with colB:
        if selected != "(none)":
            record = by_label[selected]
            st.subheader("Record actions")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Edit", key=f"{kind}_edit"):
                    st.session_state[f"edit_{kind}_id"] = record.id
                    st.rerun()
            with c2:
                confirm = st.checkbox("Confirm delete", value=False, key=f"{kind}_del_confirm")
                if st.button("Delete", disabled=not confirm, key=f"{kind}_delete"):
                    user = current_user()
                    if kind == "income":
                        action = lambda: dues.delete_income(record.id, actor=user)  # noqa: E731
                    else:
                        action = lambda: ledger.delete_expense(record.id, actor=user)  # noqa: E731
                    if run_action(action, "Record deleted."):
                        st.rerun()

    st.divider()

    edit_id = st.session_state.get(f"edit_{kind}_id")
    existing = ledger.get_record(kind, edit_id) if edit_id else None
    if existing:
        st.subheader("✏️ Edit record")
        record_form(kind, existing)
        if st.button("Cancel edit", key=f"{kind}_cancel"):
            st.session_state[f"edit_{kind}_id"] = None
            st.rerun()
    else:
        st.subheader("➕ Add record")
        record_form(kind)


def dues_editor(year: int):
    roster = members.list_members()
    if not roster:
        st.info("No members yet.")
        return

    options = {f"{m.name} ({m.id})": m for m in roster}
    c1, c2 = st.columns(2)
    with c1:
        member = options[st.selectbox("Member", list(options.keys()))]
    with c2:
        month = st.selectbox("Month", MONTHS, format_func=utils.month_label)

    record = dues.get_member_dues(member.id, year)
    entry = record.month(month)

    c1, c2, c3 = st.columns(3)
    with c1:
        status = st.selectbox(
            "Status",
            DUES_STATUSES,
            index=DUES_STATUSES.index(entry.status),
            format_func=lambda s: DUES_STATUS_LABELS[s],
        )
        next_color = dues.cycle_color(entry.color)
        if st.button(f"Highlight: {entry.color} → {next_color}"):
            keep_amount = entry.amount if entry.status != "-" else None
            if run_action(
                lambda: dues.apply_dues_change(member.id, year, month, entry.status, keep_amount, next_color,
                                               actor=current_user()),
                "Highlight changed.",
            ):
                st.rerun()
    with c2:
        dues_amount = st.number_input("Dues this month", min_value=0, step=1000, value=entry.dues_amount)
        save_default = st.checkbox("Use as this member's default dues")
    with c3:
        paid_value = entry.amount if entry.status == "paid" else int(dues_amount)
        paid_amount = st.number_input(
            "Amount paid", min_value=0, step=1000, value=paid_value, disabled=status != "paid"
        )

    amount = int(paid_amount) if status == "paid" else None
    try:
        after = dues.preview_unpaid(record, month, status, amount, int(dues_amount))
    except ClubError as e:
        st.error(str(e))
        return
    st.write(f"Current unpaid: **{utils.format_currency(record.unpaid_amount)}**")
    if after != record.unpaid_amount:
        st.warning(f"Unpaid after this change: {utils.format_currency(after)}")

    if st.button("Save dues", type="primary"):
        user = current_user()

        def save():
            if save_default:
                members.set_default_dues(member.id, int(dues_amount), actor=user)
            dues.apply_dues_change(member.id, year, month, status, amount, None, int(dues_amount), actor=user)

        if run_action(save, "Dues saved."):
            st.rerun()

    with st.expander("Override unpaid amount"):
        new_unpaid = st.number_input("Unpaid amount", min_value=0, step=1000, value=record.unpaid_amount)
        if st.button("Save unpaid amount"):
            if run_action(
                lambda: dues.set_unpaid_amount(member.id, year, int(new_unpaid), actor=current_user()),
                "Unpaid amount saved.",
            ):
                st.rerun()


def members_page():
    year = st.session_state.year
    st.header(f"👥 Members {year}")

    tab_dues, tab_contacts, tab_condolence = st.tabs(["Dues", "Contacts", "Condolence payouts"])
    with tab_dues:
        grid = dues.monthly_status_table(year)
        st.dataframe(grid, use_container_width=True, hide_index=True)
        st.caption(f"Total unpaid: {utils.format_currency(int(grid['unpaid'].sum()) if not grid.empty else 0)}")

        if auth.can_edit(current_user()):
            st.divider()
            st.subheader("Edit dues")
            dues_editor(year)

    with tab_contacts:
        st.dataframe(
            pd.DataFrame(
                [{"name": m.name, "id": m.id, "contact": contact} for m, contact in members.member_contacts()],
                columns=["name", "id", "contact"],
            ),
            use_container_width=True,
            hide_index=True,
        )
        st.caption("Members edit their own contact under Settings.")

    with tab_condolence:
        shown = False
        for m in members.list_members():
            payouts = ledger.condolence_payouts(m.id, year)
            if not payouts:
                continue
            shown = True
            st.markdown(f"**{m.name}**")
            st.dataframe(
                pd.DataFrame([{"date": p.date, "note": p.note or "", "amount": p.amount} for p in payouts]),
                use_container_width=True,
                hide_index=True,
            )
        if not shown:
            st.caption("No condolence payouts this year.")


def events_page():
    year = st.session_state.year
    st.header("🎗️ Special occasions")

    current = events.list_events()
    df = pd.DataFrame(
        [{"date": e.date, "name": e.name, "description": e.description, "amount": e.amount} for e in current],
        columns=["date", "name", "description", "amount"],
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    user = current_user()
    if auth.can_edit(user):
        st.subheader("➕ Add")
        c1, c2, c3, c4 = st.columns([1, 1, 2, 1])
        with c1:
            event_date = st.date_input("Date", value=date.today()).isoformat()
        with c2:
            name = st.text_input("Member name")
        with c3:
            description = st.text_input("Description")
        with c4:
            amount = st.text_input("Amount", value="0")
        if st.button("Add", type="primary"):
            if run_action(lambda: events.add_event(event_date, name, description, amount, actor=user), "Added."):
                st.rerun()

        if current:
            by_label = {f"{e.date} · {e.name}": e for e in current}
            c1, c2 = st.columns(2)
            with c1:
                chosen = st.selectbox("Delete entry", list(by_label.keys()))
            with c2:
                if st.button("Delete"):
                    if run_action(lambda: events.delete_event(by_label[chosen].id, actor=user), "Deleted."):
                        st.rerun()

            confirm = st.checkbox(f"Archive the current list as {year} and start a new one")
            if st.button("Reset", disabled=not confirm):
                if run_action(lambda: events.reset_events(year, actor=user), "List archived."):
                    st.rerun()

    st.divider()
    st.subheader("History")
    for history in events.list_event_histories():
        with st.expander(f"{history.year} (archived {history.created_at}, {len(history.events)} entries)"):
            st.dataframe(
                pd.DataFrame([{"date": e.date, "name": e.name, "description": e.description,
                               "amount": e.amount} for e in history.events]),
                use_container_width=True,
                hide_index=True,
            )


def settings_page():
    st.header("⚙️ Settings")
    user = current_user()

    st.subheader("My profile")
    name = st.text_input("Display name", value=user.name)
    contact = st.text_input("Contact (phone or e-mail)", value=user.contact)
    if st.button("Save profile"):
        if run_action(lambda: auth.update_profile(user.id, name, contact), "Profile saved."):
            st.session_state.user = auth.get_user(user.id)
            st.rerun()

    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if p1 != p2:
            st.error("Passwords do not match.")
        else:
            run_action(lambda: auth.change_password(user.id, p1), "Password updated.")

    if auth.can_edit(user):
        st.divider()
        st.subheader("Initial carryover")
        st.caption("Opening balance of the earliest year on record.")
        initial = st.number_input("Amount", step=1000, value=balances.get_initial_balance())
        if st.button("Save carryover"):
            run_action(lambda: balances.set_initial_balance(int(initial), actor=user), "Carryover saved.")

    if not auth.can_manage_users(user):
        return

    st.divider()
    st.subheader("Users")
    users = auth.list_users()
    st.dataframe(
        pd.DataFrame([{"id": u.id, "name": u.name, "role": u.role, "contact": u.contact} for u in users]),
        use_container_width=True,
        hide_index=True,
    )

    with st.expander("➕ Add user"):
        c1, c2, c3, c4 = st.columns(4)
        new_id = c1.text_input("User id", key="new_user_id")
        new_name = c2.text_input("Name", key="new_user_name")
        new_password = c3.text_input("Password", type="password", key="new_user_password")
        new_role = c4.selectbox("Role", ROLES, index=ROLES.index("member"), key="new_user_role")
        if st.button("Add user"):
            if run_action(lambda: auth.add_user(new_id, new_name, new_password, new_role, actor=user), "User added."):
                st.rerun()

    with st.expander("✏️ Edit / delete user"):
        options = {f"{u.name} ({u.id})": u for u in users}
        chosen = options[st.selectbox("User", list(options.keys()))]
        role = st.selectbox("Role", ROLES, index=ROLES.index(chosen.role), key="edit_user_role")
        if st.button("Save role"):
            if run_action(lambda: auth.update_user(chosen.id, role=role, actor=user), "User updated."):
                st.rerun()
        confirm = st.checkbox("Confirm delete", value=False, key="user_del_confirm")
        if st.button("Delete user", disabled=not confirm):
            if run_action(lambda: auth.delete_user(chosen.id, actor=user), "User deleted."):
                st.rerun()


def main_app():
    user = current_user()
    st.sidebar.title(f"🏷️ {settings.club_name}")
    st.sidebar.caption(f"Logged in as: {user.name} ({user.role})")
    year_selector()

    pages = ["Dashboard", "Income", "Expenses", "Members", "Events", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Income":
        ledger_page("income")
    elif st.session_state.page == "Expenses":
        ledger_page("expense")
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Events":
        events_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if current_user() is None:
        login_screen()
        return

    # Force password change on first login after DB creation
    if current_user().id == auth.DEFAULT_ADMIN_ID and auth.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
