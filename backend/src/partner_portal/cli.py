"""Command-line interface for the partner portal."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from partner_portal.auth.models import PartnerUser, UserRole
from partner_portal.logging_config import get_logger, setup_logging
from partner_portal.points.ledger import points_ledger
from partner_portal.referral.models import ChannelPartner, PartnerStatus
from partner_portal.storage.db import db

# Configure logging
setup_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="partner-portal",
    help="Partner Portal - referral program administration",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("partner-create")
def create_partner(
    company_name: Annotated[str, typer.Option("--company", "-c", help="Company name")],
    contact_name: Annotated[str, typer.Option("--contact", help="Contact person")],
    email: Annotated[str, typer.Option("--email", "-e", help="Contact email")],
    referral_code: Annotated[str, typer.Option("--code", help="Unique referral code")],
    status: Annotated[PartnerStatus, typer.Option("--status", "-s", help="Partner status")] = PartnerStatus.ACTIVE,
) -> None:
    """Register a channel partner with its referral code."""
    code = referral_code.strip()
    if not code:
        console.print("[red]Referral code must not be empty[/red]")
        raise typer.Exit(1)

    try:
        with db.session() as session:
            partner = ChannelPartner(
                company_name=company_name,
                contact_name=contact_name,
                email=email,
                referral_code=code,
                status=status,
            )
            session.add(partner)
            session.flush()
            partner_id = partner.id
    except IntegrityError:
        console.print(f"[red]Referral code '{code}' is already in use[/red]")
        raise typer.Exit(1)

    logger.info("partner_created", partner_id=partner_id, referral_code=code)
    console.print(f"[bold green]✓[/bold green] Partner created with ID: [bold]{partner_id}[/bold]")
    console.print(f"  Company: {company_name}")
    console.print(f"  Referral code: {code}")
    console.print(f"  Status: {status.value}")


@app.command("partner-list")
def list_partners() -> None:
    """List channel partners."""
    with db.session() as session:
        partners = session.scalars(
            select(ChannelPartner).order_by(ChannelPartner.company_name)
        ).all()

        if not partners:
            console.print("[yellow]No partners found[/yellow]")
            return

        table = Table(title="Partners")
        table.add_column("ID", style="cyan")
        table.add_column("Company", style="green")
        table.add_column("Code")
        table.add_column("Status")

        for partner in partners:
            table.add_row(partner.id, partner.company_name, partner.referral_code, partner.status.value)

        console.print(table)


@app.command("grant-role")
def grant_role(
    user_id: Annotated[str, typer.Argument(help="Identity-store user id")],
    role: Annotated[UserRole, typer.Option("--role", "-r", help="Role to grant")] = UserRole.PARTNER,
    partner_id: Annotated[str | None, typer.Option("--partner", "-p", help="Partner id to link")] = None,
) -> None:
    """Create or update a user's portal role."""
    with db.session() as session:
        if partner_id and session.get(ChannelPartner, partner_id) is None:
            console.print(f"[red]Partner {partner_id} not found[/red]")
            raise typer.Exit(1)

        row = session.scalars(
            select(PartnerUser).where(PartnerUser.user_id == user_id)
        ).first()
        if row is None:
            row = PartnerUser(user_id=user_id, points=0)
            session.add(row)

        row.role = role
        if partner_id:
            row.partner_id = partner_id

        linked_partner = row.partner_id

    logger.info("role_granted", user_id=user_id, role=role.value, partner_id=linked_partner)
    console.print(f"[bold green]✓[/bold green] {user_id} is now [bold]{role.value}[/bold]")
    if linked_partner:
        console.print(f"  Partner: {linked_partner}")


@app.command("points")
def show_points(
    user_id: Annotated[str, typer.Argument(help="Identity-store user id")],
) -> None:
    """Show a user's points balance."""
    balance = points_ledger.get_points(user_id)
    console.print(f"[bold]User:[/bold] {user_id}")
    console.print(f"[bold]Points:[/bold] {balance}")


if __name__ == "__main__":
    app()
