"""
Run calculator.feature with its step definitions and print a summary
"""

import asyncio
import logging
from pathlib import Path

from co_gherkin import FeatureRunner

HERE = Path(__file__).parent


async def main():
    logging.basicConfig(level=logging.INFO)

    runner = FeatureRunner({"steps": [str(HERE / "calculator_steps.py")]})
    result = await runner.execute_feature(HERE / "calculator.feature")

    print("\n" + "=" * 60)
    print(f"Feature: {result['feature']}")
    print(f"Status: {result['status']}")

    for scenario in result['scenarios']:
        print(f"\nScenario: {scenario['name']}")
        print(f"  Status: {scenario['status']}")
        if scenario['status'] == 'failed':
            print(f"  Error: {scenario.get('error', 'Unknown error')}")


if __name__ == "__main__":
    asyncio.run(main())
