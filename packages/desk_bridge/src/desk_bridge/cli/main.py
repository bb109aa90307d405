"""
Bridge CLI

Command-line interface for desk bridge administration.

Commands:
- add-tenant: Register or update a tenant's desk and messaging configuration
- list-tenants: List configured tenants
- resolve-inbox: Resolve and show a tenant's desk inbox id
- list-conversations: List desk conversations for a phone number
- send-test: Send a test message through the tenant's messaging gateway
"""

import asyncio
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.client import DeskClient
from desk_bridge.errors import BridgeError
from desk_bridge.network import gateway_for_tenant, normalize_phone, parse_peer_id
from desk_bridge.persistence.tenants import TenantDirectory, get_tenant_directory
from desk_bridge.routing.tenant_resolver import TenantResolver

app = typer.Typer(
    name="bridge-cli",
    help="Desk Bridge CLI",
)

console = Console()


def get_directory() -> TenantDirectory:
    """Get the configured tenant directory."""
    return get_tenant_directory()


def load_tenant(tenant_id: str) -> TenantConfig:
    try:
        return TenantResolver(get_directory()).get(tenant_id)
    except BridgeError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def add_tenant(
    tenant_id: str = typer.Argument(..., help="Tenant (instance) id"),
    desk_url: str = typer.Option(..., help="Desk base URL"),
    account_id: str = typer.Option(..., help="Desk account id"),
    access_token: str = typer.Option(..., help="Desk access token (encrypted at rest when a key is set)"),
    inbox_id: Optional[int] = typer.Option(None, help="Desk inbox id"),
    inbox_name: Optional[str] = typer.Option(None, help="Desk inbox name, resolved when no id is given"),
    gateway_url: str = typer.Option("", help="Evolution API base URL"),
    gateway_api_key: str = typer.Option("", help="Evolution API key (encrypted at rest when a key is set)"),
    instance_name: str = typer.Option("", help="Evolution instance name (defaults to the tenant id)"),
    mirror_self_messages: bool = typer.Option(False, help="Forward self-sent messages as outgoing"),
    react_with_emoji: bool = typer.Option(False, help="Send single-emoji replies as reactions"),
):
    """
    Register a tenant.

    Overwrites any existing configuration for the same tenant id.
    """
    if not inbox_id and not inbox_name:
        rprint("[red]Either --inbox-id or --inbox-name is required[/red]")
        raise typer.Exit(1)

    tenant = TenantConfig(
        tenant_id=tenant_id,
        desk_url=desk_url,
        account_id=account_id,
        access_token=access_token,
        inbox_id=inbox_id,
        inbox_name=inbox_name,
        gateway_url=gateway_url,
        gateway_api_key=gateway_api_key,
        instance_name=instance_name,
        mirror_self_messages=mirror_self_messages,
        react_with_emoji=react_with_emoji,
    )

    try:
        get_directory().save(tenant)
    except BridgeError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint("[green]Tenant saved:[/green]")
    rprint(f"  Tenant: {tenant.tenant_id}")
    rprint(f"  Desk: {tenant.desk_url} (account {tenant.account_id})")
    rprint(f"  Inbox: {tenant.inbox_id or tenant.inbox_name}")
    rprint(f"  Session: {tenant.session_name}")


@app.command()
def list_tenants():
    """
    List configured tenants.
    """
    tenants = get_directory().list_tenants()

    if not tenants:
        rprint("[yellow]No tenants configured[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Tenants")
    table.add_column("Tenant", style="dim")
    table.add_column("Desk")
    table.add_column("Account")
    table.add_column("Inbox")
    table.add_column("Session")
    table.add_column("Mirror self")

    for tenant in tenants:
        table.add_row(
            tenant.tenant_id,
            tenant.desk_url,
            tenant.account_id,
            str(tenant.inbox_id) if tenant.inbox_id else f"name: {tenant.inbox_name or '-'}",
            tenant.session_name,
            "Yes" if tenant.mirror_self_messages else "No",
        )

    console.print(table)


@app.command()
def resolve_inbox(
    tenant_id: str = typer.Argument(..., help="Tenant id"),
    save: bool = typer.Option(False, "--save", help="Store the resolved id in the tenant config"),
):
    """
    Resolve the tenant's desk inbox id from its inbox name.
    """
    directory = get_directory()
    resolver = TenantResolver(directory)

    try:
        tenant = asyncio.run(resolver.resolve(tenant_id))
    except BridgeError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Inbox id:[/green] {tenant.inbox_id}")
    if save:
        directory.save(tenant)
        rprint("[green]Saved[/green]")


@app.command()
def list_conversations(
    tenant_id: str = typer.Argument(..., help="Tenant id"),
    phone: str = typer.Argument(..., help="Contact phone number"),
):
    """
    List desk conversations for a contact phone.
    """
    tenant = load_tenant(tenant_id)
    phone = normalize_phone(phone)

    async def fetch():
        async with DeskClient.for_tenant(tenant) as desk:
            contacts = await desk.filter_contacts_by_phone(phone)
            if not contacts:
                return None, []
            return contacts[0], await desk.list_contact_conversations(contacts[0].id)

    try:
        contact, conversations = asyncio.run(fetch())
    except BridgeError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if contact is None:
        rprint(f"[yellow]No contact found for +{phone}[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Conversations for {contact.name or phone} (contact {contact.id})")
    table.add_column("ID", style="dim")
    table.add_column("Inbox")
    table.add_column("Status")
    table.add_column("Reusable")

    for conv in conversations:
        table.add_row(
            str(conv.id),
            str(conv.inbox_id or "-"),
            conv.status,
            "Yes" if tenant.inbox_id and conv.is_reusable(tenant.inbox_id) else "No",
        )

    console.print(table)


@app.command()
def send_test(
    tenant_id: str = typer.Argument(..., help="Tenant id"),
    to: str = typer.Argument(..., help="Recipient phone number or peer id"),
    text: str = typer.Option("Hello from the desk bridge!", help="Message text"),
):
    """
    Send a test message.

    This sends a message directly via the tenant's gateway for testing purposes.
    """
    tenant = load_tenant(tenant_id)

    async def send():
        gateway = gateway_for_tenant(tenant)
        try:
            return await gateway.send_text(parse_peer_id(to), text)
        finally:
            await gateway.close()

    try:
        result = asyncio.run(send())
    except BridgeError as e:
        rprint("[red]Failed to send message[/red]")
        rprint(f"  Error: {e}")
        rprint(f"  Code: {e.code}")
        raise typer.Exit(1)

    rprint("[green]Message sent successfully![/green]")
    rprint(f"  Message ID: {result.message_id}")


if __name__ == "__main__":
    app()
