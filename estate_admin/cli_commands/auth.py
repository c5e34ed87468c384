"""
Sign-in commands. The token is kept in the session file between runs.
"""

import click

from estate_admin.cli_commands.common import console, fail, get_client, get_session
from estate_admin.core.exceptions import EstateAdminError
from estate_admin.data.auth import AuthService
from estate_admin.store.errors import normalize_error


def _auth_service(ctx) -> AuthService:
    return AuthService(get_client(ctx), get_session(ctx))


@click.group()
def auth():
    """Sign in and out of the backend."""
    pass


@auth.command()
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
def login(ctx, email: str, password: str):
    """Sign in and remember the session."""
    try:
        user = _auth_service(ctx).login(email, password)
    except EstateAdminError as e:
        fail(normalize_error(e, "Login failed"))

    console.print(f"[green]✓[/green] Signed in as {user.name or user.email} ({user.role})")


@auth.command()
@click.pass_context
def logout(ctx):
    """Sign out and forget the stored session."""
    _auth_service(ctx).logout()
    console.print("Signed out")


@auth.command()
@click.option("--remote", is_flag=True, help="Ask the backend instead of the stored session")
@click.pass_context
def whoami(ctx, remote: bool):
    """Show the signed-in user."""
    service = _auth_service(ctx)
    if remote:
        try:
            user = service.current_user()
        except EstateAdminError as e:
            fail(normalize_error(e, "Failed to fetch current user"))
    else:
        user = service.stored_user()
        if user is None:
            fail("Not signed in. Run 'estate-admin auth login'.")

    console.print(f"{user.name} <{user.email}>  role={user.role}  status={user.status}")
