import click
from flask.cli import with_appcontext

from recruit.databases import get_store
from recruit.database.seed.seed_jobs import seed as seed_jobs
from recruit.database.seed.seed_candidates import seed as seed_candidates


@click.command("seed-all")
@with_appcontext
def seed_all():
    """Load demo jobs and candidates into the record store."""
    click.echo("Seeding record store...")
    store = get_store()
    d = store.load()
    jobs = seed_jobs(d)
    seed_candidates(d, jobs)
    store.save(d)
    click.echo(f"Seeded {len(jobs)} jobs and {len(d['candidates'])} candidates in total.")
