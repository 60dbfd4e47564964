import click

from recruit.services import pipeline

CANDIDATES = [
    {"name": "Zhang San", "phone": "13800138000", "email": "zhangsan@example.com", "source": "Referral",
     "note": "3 years of backend work", "tags": ["High Potential"], "job": "Backend Engineer"},
    {"name": "Li Si", "phone": "13900139000", "email": "lisi@example.com", "source": "Job Board",
     "note": "5 years, strong on databases", "tags": ["Excellent"], "job": "Backend Engineer"},
    {"name": "Wang Wu", "phone": "13700137000", "email": "wangwu@example.com", "source": "Website",
     "note": "Portfolio attached", "tags": [], "job": "Product Designer"},
    {"name": "Zhao Liu", "phone": "13600136000", "email": "zhaoliu@example.com", "source": "Headhunter",
     "note": "", "tags": ["Urgent"], "job": "Operations Specialist"},
]


def seed(d, jobs):
    click.echo("Seeding candidates...")
    job_ids = {j["title"]: j["id"] for j in jobs}
    existing = {(c["name"], c["jobId"]) for c in d["candidates"]}
    for demo in CANDIDATES:
        job_id = job_ids[demo["job"]]
        if (demo["name"], job_id) in existing:
            continue
        fields = {k: v for k, v in demo.items() if k != "job"}
        fields["jobId"] = job_id
        pipeline.create_candidate(d, fields, "Seeder")
