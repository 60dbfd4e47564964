import click

from recruit.databases import now_iso, rid

JOBS = [
    {
        "title": "Backend Engineer",
        "department": "Platform",
        "location": "Shanghai",
        "owner": "Li Lei",
        "headcount": 2,
        "level": "P6",
        "category": "Engineering",
        "jd": (
            "Design and maintain the services behind our hiring products.\n"
            "Requirements: 3+ years of Python or Go, SQL, experience with message queues.\n"
            "Nice to have: cloud deployment and observability tooling."
        ),
    },
    {
        "title": "Product Designer",
        "department": "Design",
        "location": "Beijing",
        "owner": "Han Meimei",
        "headcount": 1,
        "level": "P5",
        "category": "Design",
        "jd": "Own the end-to-end design of recruiting workflows, from research to shipped UI.",
    },
    {
        "title": "Operations Specialist",
        "department": "E-commerce",
        "location": "Hangzhou",
        "owner": "Wang Fang",
        "headcount": 3,
        "level": "P4",
        "category": "Operations",
        "jd": "Run merchant onboarding and keep the weekly operating metrics on track.",
    },
]


def seed(d):
    """Add the demo jobs that are not there yet; returns every demo job."""
    click.echo("Seeding jobs...")
    by_title = {j["title"]: j for j in d["jobs"]}
    jobs = []
    for demo in JOBS:
        job = by_title.get(demo["title"])
        if not job:
            ts = now_iso()
            job = dict(demo, id=rid("job"), state="open", createdAt=ts, updatedAt=ts)
            d["jobs"].insert(0, job)
        jobs.append(job)
    return jobs
