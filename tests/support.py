import os
import tempfile
from pathlib import Path

TEST_DATA_DIR = Path(tempfile.gettempdir()) / "cvmatch-tests"


def configure_test_env() -> None:
    """Deterministic offline settings; must run before cvmatch modules are imported."""
    TEST_DATA_DIR.mkdir(parents=True, exist_ok=True)
    os.environ.setdefault("API_KEY", "")
    os.environ.setdefault("LLM_ENABLED", "0")
    os.environ.setdefault("EMBEDDING_PROVIDER", "simple")
    os.environ.setdefault("EMBEDDING_DIMENSIONS", "256")
    os.environ.setdefault("ANALYTICS_ENABLED", "0")
    os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
    os.environ.setdefault("ANALYSIS_DB_PATH", str(TEST_DATA_DIR / "analyses.db"))


CV_TEXT = """Jane Doe
Senior Software Engineer

Summary
Backend engineer with 8 years of experience building SaaS platforms, data pipelines and
customer facing web applications for fast growing companies in Europe and North America.

Skills
Python, Django, FastAPI, PostgreSQL, Redis, Docker, Kubernetes, AWS, Git, CI/CD

Soft Skills
Leadership, mentoring, communication, cross-functional collaboration, problem solving

Experience
Senior Software Engineer, Acme Analytics, 2019 - present
- Led a team of 6 engineers delivering microservices for a fintech client with strict uptime targets.
- Reduced API latency by 40% through query tuning and caching with Redis.
- Increased deployment frequency by 3x by rebuilding CI/CD pipelines on AWS.
- Mentored 4 junior developers and presented quarterly architecture reviews to leadership.
- Owned the on-call rotation and wrote runbooks that cut incident resolution time in half.
Software Developer, Brightside Labs, 2015 - 2019
- Built REST APIs and data pipelines in Python serving two million requests per day.
- Grew the analytics customer base from 20 to 150 accounts by shipping self-service reporting.
- Collaborated with product managers on system design and code reviews for every release.
- Migrated legacy cron jobs to containerised workers running on Kubernetes.

Education
Master of Science in Computer Science, University of Lisbon, 2015
AWS Certified Solutions Architect
"""

JOB_TEXT = """Senior Backend Engineer - Fintech Platform

We are looking for a backend engineer with 5+ years of experience building microservices and REST APIs.

Requirements
- Strong Python and Django or FastAPI skills
- Hands-on work with PostgreSQL, Kafka and Docker on AWS
- Kubernetes and Terraform for deployment
- Leadership and mentoring of junior engineers
- Excellent communication and teamwork in agile, cross-functional teams
- Bachelor degree in Computer Science or related field
"""
