import marimo

__generated_with = "0.13.10"
app = marimo.App(width="medium", app_title="NoteSphere")


@app.cell
def _():
    import marimo as mo

    return (mo,)


# ---------------------------------------------------------------------------
# Bootstrap: logging, backends, services
# ---------------------------------------------------------------------------


@app.cell
def _setup():
    import sys
    from pathlib import Path

    _SRC = Path(__file__).parent.parent / "src"
    if str(_SRC) not in sys.path:
        sys.path.insert(0, str(_SRC))

    from notesphere import AccountService, Notifier, SessionController, open_backends
    from notesphere.log import configure_logging
    from notesphere.session import LOGIN_ROUTE, NOTES_ROUTE

    configure_logging()
    auth, store = open_backends()
    notifier = Notifier()
    return (
        AccountService,
        LOGIN_ROUTE,
        NOTES_ROUTE,
        SessionController,
        auth,
        notifier,
        store,
    )


# ---------------------------------------------------------------------------
# Reactive state
# ---------------------------------------------------------------------------


@app.cell
def _state(mo, LOGIN_ROUTE):
    route = mo.state(LOGIN_ROUTE)
    revision = mo.state(0)
    return revision, route


@app.cell
async def _session(AccountService, SessionController, auth, notifier, route, store):
    set_route = route[1]
    session = SessionController(auth, store, notifier=notifier, navigate=set_route)
    await session.start()
    await session.wait_idle()
    accounts = AccountService(auth, store, notifier=notifier, navigate=set_route)
    return accounts, session


@app.cell
def _toasts(mo, notifier, revision):
    revision[0]()
    _last = notifier.last
    _kinds = {"success": "success", "error": "danger", "info": "info"}
    toast = mo.callout(mo.md(_last.message), kind=_kinds[_last.kind]) if _last else mo.md("")
    return (toast,)


# ---------------------------------------------------------------------------
# Login / sign-up page
# ---------------------------------------------------------------------------


@app.cell
def _login_form(mo):
    login_form = (
        mo.md("{mode}\n\n{name}\n\n{email}\n\n{password}")
        .batch(
            mode=mo.ui.radio(options=["Sign in", "Sign up"], value="Sign in", inline=True),
            name=mo.ui.text(label="Name (sign-up only)"),
            email=mo.ui.text(label="Email", kind="email"),
            password=mo.ui.text(label="Password", kind="password"),
        )
        .form(submit_button_label="Continue")
    )
    return (login_form,)


@app.cell
async def _login_submit(accounts, login_form, revision, session):
    # Reruns only on a new submission of login_form
    if login_form.value:
        _v = login_form.value
        if _v["mode"] == "Sign up":
            await accounts.sign_up(_v["name"], _v["email"], _v["password"])
        else:
            await accounts.sign_in(_v["email"], _v["password"])
        await session.wait_idle()
        revision[1](lambda n: n + 1)
    return


# ---------------------------------------------------------------------------
# Notes page
# ---------------------------------------------------------------------------


@app.cell
def _notes_controls(mo):
    search_input = mo.ui.text(placeholder="Search notes…", label="", full_width=True)
    logout_btn = mo.ui.run_button(label="Logout", kind="neutral")
    add_form = (
        mo.md("{title}\n\n{content}")
        .batch(
            title=mo.ui.text(label="Title", full_width=True),
            content=mo.ui.text_area(label="Content", full_width=True),
        )
        .form(submit_button_label="Add note", clear_on_submit=True)
    )
    return add_form, logout_btn, search_input


@app.cell
def _search(revision, search_input, session):
    session.set_search_filter(search_input.value)
    revision[1](lambda n: n + 1)
    return


@app.cell
async def _logout(logout_btn, revision, session):
    if logout_btn.value:
        await session.sign_out()
        await session.wait_idle()
        revision[1](lambda n: n + 1)
    return


@app.cell
async def _add_note(add_form, revision, session):
    if add_form.value:
        await session.add_note(add_form.value["title"], add_form.value["content"])
        revision[1](lambda n: n + 1)
    return


@app.cell
def _notes_table(mo, revision, session):
    revision[0]()
    notes_table = mo.ui.table(session.cache.to_frame(), selection="single", page_size=10)
    return (notes_table,)


@app.cell
def _edit_controls(mo, notes_table):
    _rows = notes_table.value
    selected_id = _rows["id"][0] if len(_rows) else ""
    edit_form = (
        mo.md("{title}\n\n{content}")
        .batch(
            title=mo.ui.text(label="Title", value=_rows["title"][0] if len(_rows) else "", full_width=True),
            content=mo.ui.text_area(label="Content", value=_rows["content"][0] if len(_rows) else "", full_width=True),
        )
        .form(submit_button_label="Save changes")
    )
    delete_btn = mo.ui.run_button(label="Delete selected", kind="danger", disabled=not selected_id)
    return delete_btn, edit_form, selected_id


@app.cell
async def _edit_submit(delete_btn, edit_form, revision, selected_id, session):
    if delete_btn.value and selected_id:
        await session.delete_note(selected_id)
        revision[1](lambda n: n + 1)
    elif edit_form.value and selected_id:
        await session.edit_note(selected_id, edit_form.value["title"], edit_form.value["content"])
        revision[1](lambda n: n + 1)
    return


# ---------------------------------------------------------------------------
# Main layout
# ---------------------------------------------------------------------------


@app.cell
def _main_layout(
    mo,
    NOTES_ROUTE,
    add_form,
    delete_btn,
    edit_form,
    login_form,
    logout_btn,
    notes_table,
    route,
    search_input,
    session,
    toast,
):
    if route[0]() == NOTES_ROUTE and session.is_signed_in():
        layout = mo.vstack(
            [
                mo.hstack([mo.md(f"## Hello, {session.greeting}"), logout_btn], justify="space-between"),
                toast,
                search_input,
                notes_table,
                mo.accordion({"New note": add_form, "Edit selected": mo.vstack([edit_form, delete_btn])}),
            ],
            gap="8px",
        )
    else:
        layout = mo.vstack([mo.md("## NoteSphere"), toast, login_form], gap="8px")
    return (layout,)


@app.cell
def _render(layout):
    layout  # noqa: B018
    return


if __name__ == "__main__":
    app.run()
