#!/usr/bin/env python3
"""Seed demo tenants and their domains into DynamoDB."""

import argparse
import os
import sys

# Add the shared layer to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src", "layers", "shared", "python"))

from leadfunnel.models.question import Question
from leadfunnel.models.tenant import Tenant, TenantConfig
from leadfunnel.repositories.tenant import TenantRepository
from leadfunnel.utils.exceptions import ConflictError

DEMO_TENANTS = [
    {
        "slug": "coaching-demo",
        "name": "Coaching Demo",
        "config": {
            "theme": {"primaryColor": "#a47f4c", "background": "#1a2e28"},
            "steps": ["hero", "questions", "result"],
            "siteTitle": "Apply for coaching",
            "hero": {
                "title": "WORK WITH US",
                "body": [
                    "We take on a handful of new clients each quarter.",
                    "Answer a few questions and we will review your application personally.",
                ],
                "ctaLabel": "Start your application",
            },
            "defaultThankYouMessage": "Thanks. We will be in touch shortly.",
            "privacyPolicy": {"mode": "external", "url": "https://example.com/privacy"},
            "cta": {
                "type": "multi_choice",
                "title": "While you wait",
                "prompt": "Pick what you want to see first",
                "options": [
                    {
                        "id": "intro",
                        "label": "Watch the intro",
                        "kind": "embed_video",
                        "variant": "direct",
                        "videoUrl": "https://www.youtube.com/embed/demo-intro",
                        "title": "How the program works",
                    },
                    {
                        "id": "stories",
                        "label": "Client stories",
                        "kind": "embed_video",
                        "variant": "sub_choice",
                        "prompt": "Which story?",
                        "choices": [
                            {"label": "Retail", "videoUrl": "https://www.youtube.com/embed/demo-retail"},
                            {"label": "Agency", "videoUrl": "https://www.youtube.com/embed/demo-agency"},
                        ],
                    },
                    {
                        "id": "discount",
                        "label": "Get the starter guide",
                        "kind": "discount_code",
                        "title": "Starter guide",
                        "linkUrl": "https://example.com/guide",
                        "code": "WELCOME10",
                    },
                    {
                        "id": "callback",
                        "label": "Request a call back",
                        "kind": "webhook_then_message",
                        "webhookTag": "callback_requested",
                        "thankYouMessage": "We will call you within one working day.",
                    },
                ],
            },
        },
        "questions": [
            {
                "id": "q1",
                "type": "single",
                "question": "What describes you best?",
                "options": ["Business owner", "Freelancer", "Employee"],
            },
            {
                "id": "q2",
                "type": "multi",
                "question": "Where are you based?",
                "options": ["UK", "USA", "Europe", "Other"],
            },
            {"id": "q3", "type": "text", "question": "What is your main goal this year?"},
            {
                "id": "email",
                "type": "contact",
                "contactKind": "email",
                "label": "Email address",
                "placeholder": "you@example.com",
            },
            {
                "id": "phone",
                "type": "contact",
                "contactKind": "tel",
                "label": "Phone number",
                "showConsentUnder": True,
            },
        ],
    },
    {
        "slug": "nature-demo",
        "name": "Nature Retreat Demo",
        "config": {
            "steps": ["questions", "result"],
            "cta": {"type": "thank_you", "message": "Thanks! Your retreat guide is on its way."},
            "submissionMode": "relay",
            "sessionScope": "tab",
        },
        "questions": [
            {
                "id": "q1",
                "type": "single",
                "question": "How often do you spend time outdoors?",
                "options": ["Daily", "Weekly", "Rarely"],
            },
            {
                "id": "instagram",
                "type": "contact",
                "contactKind": "instagram",
                "label": "Instagram handle",
                "required": False,
            },
            {"id": "email", "type": "contact", "contactKind": "email", "label": "Email"},
        ],
    },
]


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed demo tenants")
    parser.add_argument("--stage", default="dev", help="Deployment stage")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument(
        "--localhost",
        action="store_true",
        help="Also map localhost to the first demo tenant",
    )
    args = parser.parse_args()

    os.environ.setdefault("AWS_DEFAULT_REGION", args.region)
    table_name = f"leadfunnel-{args.stage}"
    print(f"Seeding data to table: {table_name}")

    repo = TenantRepository(table_name=table_name)
    first_id = None

    for demo in DEMO_TENANTS:
        tenant = Tenant(
            name=demo["name"],
            config=TenantConfig.model_validate(demo["config"]),
            questions=[Question.model_validate(q) for q in demo["questions"]],
        )
        domain = f"{demo['slug']}.local"
        try:
            repo.create_tenant(tenant, domain=domain)
        except ConflictError as e:
            print(f"Skipped {demo['name']}: {e.message}")
            continue
        first_id = first_id or tenant.id
        print(f"Seeded {demo['name']} ({domain}) -> {tenant.id}")

    if args.localhost and first_id:
        try:
            repo.domains.add_domain(first_id, "localhost")
            print(f"Mapped localhost -> {first_id}")
        except ConflictError:
            print("localhost is already mapped")

    print("\nSeed data created successfully!")


if __name__ == "__main__":
    main()
