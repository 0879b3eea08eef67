#!/usr/bin/env python3
"""
SafeMed - Smoke Check Script
Exercises a running server: health, patient creation, encounter alerts

Usage:
    python scripts/smoke_check.py [base_url]
"""

import sys
import logging

import httpx

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


def check_health(client: httpx.Client) -> bool:
    """Server answers /health"""
    logger.info("\n" + "="*60)
    logger.info("Checking /health")
    logger.info("="*60)

    try:
        resp = client.get("/health")
        resp.raise_for_status()
        data = resp.json()
        logger.info(f"✓ Server healthy, mode: {data['mode']}")
        return True
    except httpx.HTTPError as e:
        logger.error(f"✗ Health check failed: {e}")
        return False


def check_alert_flow(client: httpx.Client) -> bool:
    """Create a patient and an encounter, then print the alerts"""
    logger.info("\n" + "="*60)
    logger.info("Checking patient -> encounter -> alerts")
    logger.info("="*60)

    try:
        resp = client.post("/create-patient", json={"prompt": "Sam Carter, 52, allergic to penicillin"})
        resp.raise_for_status()
        patient_id = resp.json()["patientId"]
        logger.info(f"✓ Created patient {patient_id}")

        resp = client.post(
            "/create-encounter",
            json={
                "prompt": "Diagnosed with hypertension. Started amlodipine 5mg, aspirin 81mg and amoxicillin 500mg",
                "patientId": patient_id,
            },
        )
        resp.raise_for_status()
        alerts = resp.json()["alerts"]

        logger.info(f"✓ Encounter created, {len(alerts)} alerts:")
        for alert in alerts:
            logger.info(f"  - [{alert['severity']:6}] {alert['category']}: {alert['message']}")

        return bool(alerts)
    except (httpx.HTTPError, KeyError) as e:
        logger.error(f"✗ Alert flow failed: {e}")
        return False


def run_all_checks(base_url: str) -> int:
    """Run all smoke checks"""
    logger.info("="*60)
    logger.info(f"SafeMed - Smoke Checks against {base_url}")
    logger.info("="*60)

    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        results = {
            "health": check_health(client),
            "alert_flow": check_alert_flow(client),
        }

    logger.info("\n" + "="*60)
    logger.info("Check Results Summary")
    logger.info("="*60)

    for name, result in results.items():
        status = "✓ PASS" if result else "✗ FAIL"
        logger.info(f"{name:20} : {status}")

    if all(results.values()):
        logger.info("\n✓ All checks passed!")
        return 0
    else:
        logger.info("\n✗ Some checks failed")
        return 1


if __name__ == "__main__":
    sys.exit(run_all_checks(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL))
