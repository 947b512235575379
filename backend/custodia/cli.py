# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/custodia/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system wipe --yes
#   Clear custody ledgers, folio claims and change events; keep assets and directory.
#
# Folios:
# - python -m flask folios preview --type RESGUARDO
#   Show the next folio without claiming it.
# - python -m flask folios claims --type BAJA --limit 20
#   List recently claimed folios.
#
# Directory:
# - python -m flask directors list
#   List directors with position, areas and completeness.
# - python -m flask directors add --name "Ana López" --position "JEFA" --area "FINANZAS"
#   Create a director (position and area optional; omitted = incomplete).
# - python -m flask directors complete 3 --area "FINANZAS" --position "JEFE"
#   Complete a director (replaces all of its areas).
#
# Catalog:
# - python -m flask catalog stats
#   Pool counts and availability.
# - python -m flask catalog load-csv INEA assets.csv
#   Load intake rows (header row = column names, inventory_code required).

import csv

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ChangeEvent, CustodyRecord, Director, DirectorArea, FolioClaim
from .services import catalog_service, director_service, folio_service
from .validation import ValidationError, NotFoundError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """
    Clear custody activity while keeping assets and the directory.

    Removes: custody ledger rows, folio claims, change events.
    Keeps: asset pools, directors, areas, and the decommission ledger
    (append-only; drop it with reset-db).

    Asset custody fields are NOT cleared; use this on fresh intake data only.
    """
    if not yes:
        click.confirm("WARN This will DELETE all custody activity. Are you sure?", abort=True)

    removed = {}
    for model in (CustodyRecord, FolioClaim, ChangeEvent):
        removed[model.__tablename__] = db.session.query(model).delete(synchronize_session=False)
    db.session.commit()

    for table, count in removed.items():
        click.echo(f"PASS {table}: {count} row(s) removed")


@click.group('folios')
def folios_group():
    """Folio inspection commands."""


@folios_group.command('preview')
@click.option('--type', 'folio_type', default=folio_service.FOLIO_TYPE_CUSTODY,
              type=click.Choice(folio_service.FOLIO_TYPES, case_sensitive=False))
@with_appcontext
def preview_folio_cli(folio_type):
    """Show the next folio for a document type without claiming it."""
    preview = folio_service.preview_folio(folio_type)
    click.echo(preview.folio)
    if preview.is_fallback:
        click.echo("WARN Store unavailable, fallback folio shown")


@folios_group.command('claims')
@click.option('--type', 'folio_type', default=None,
              type=click.Choice(folio_service.FOLIO_TYPES, case_sensitive=False))
@click.option('--limit', default=20, show_default=True)
@with_appcontext
def list_claims_cli(folio_type, limit):
    """List recently claimed folios."""
    claims = folio_service.list_claims(folio_type, limit=limit)
    if not claims:
        click.echo("No folio claims found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Folio':<22} {'Type':<10} {'Period':<10} {'Claimed by':<20} {'At'}")
    click.echo("="*80)
    for claim in claims:
        data = claim.to_dict()
        click.echo(
            f"{claim.folio:<22} {claim.folio_type:<10} {claim.period:<10} "
            f"{(claim.claimed_by or '-'):<20} {data['claimed_at']}"
        )
    click.echo("="*80 + "\n")


@click.group('directors')
def directors_group():
    """Director directory commands."""


@directors_group.command('list')
@click.option('--incomplete', is_flag=True, help='Only directors missing position or area')
@with_appcontext
def list_directors_cli(incomplete):
    """List directors with their areas."""
    profiles = director_service.list_directors()
    if incomplete:
        profiles = [p for p in profiles if not p.is_complete]

    if not profiles:
        click.echo("No directors found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<35} {'Position':<25} {'Areas'}")
    click.echo("="*100)
    for p in profiles:
        areas = ", ".join(p.areas) if p.areas else "none"
        flag = "" if p.is_complete else f"  (missing: {', '.join(p.missing_fields)})"
        click.echo(f"{p.id:<5} {p.name:<35} {(p.position or '-'):<25} {areas}{flag}")
    click.echo("="*100 + "\n")


@directors_group.command('add')
@click.option('--name', required=True)
@click.option('--position', default=None)
@click.option('--area', default=None, help='Area name (created if missing)')
@with_appcontext
def add_director_cli(name, position, area):
    """Create a director."""
    if director_service.find_director(name):
        click.echo(f"FAIL Director '{name}' already exists")
        return

    director = Director(name=" ".join(name.split()), legacy_position=(position or "").strip() or None)
    db.session.add(director)
    db.session.flush()
    if area and area.strip():
        target = director_service.get_or_create_area(area.strip())
        db.session.add(DirectorArea(director_id=director.id, area_id=target.id))
    db.session.commit()

    profile = director_service.build_profile(director)
    state = "complete" if profile.is_complete else f"incomplete ({', '.join(profile.missing_fields)})"
    click.echo(f"PASS Created director {profile.name} (ID: {profile.id}), {state}")


@directors_group.command('complete')
@click.argument('director_id', type=int)
@click.option('--area', required=True)
@click.option('--position', required=True)
@click.option('--actor', default='cli')
@with_appcontext
def complete_director_cli(director_id, area, position, actor):
    """Give a director exactly one area and a position."""
    try:
        profile = director_service.complete_director(director_id, area, position, actor=actor)
        db.session.commit()
    except (ValidationError, NotFoundError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS {profile.name}: {profile.position} / {', '.join(profile.areas)}")


@click.group('catalog')
def catalog_group():
    """Asset catalog commands."""


@catalog_group.command('stats')
@with_appcontext
def catalog_stats_cli():
    """Pool counts and availability."""
    stats = catalog_service.catalog_stats()
    click.echo("\n" + "="*60)
    click.echo(f"{'Pool':<15} {'Total':<10} {'Written off':<14} {'Available'}")
    click.echo("="*60)
    for origin, pool in stats["pools"].items():
        click.echo(f"{origin:<15} {pool['total']:<10} {pool['written_off']:<14} {pool['available']}")
    click.echo("="*60)
    click.echo(f"Custody documents: {stats['custody_folios']} ({stats['custody_rows']} asset rows)\n")


@catalog_group.command('load-csv')
@click.argument('origin')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def load_csv_cli(origin, path):
    """Load intake rows from a CSV file into one asset pool."""
    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    try:
        created = catalog_service.load_assets(origin, rows)
        db.session.commit()
    except ValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Loaded {created} asset(s) into {catalog_service.normalize_origin(origin)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(folios_group)
    app.cli.add_command(directors_group)
    app.cli.add_command(catalog_group)
