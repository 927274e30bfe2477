"""
Step definitions for calculator.feature

Registered on the global registry, so every feature run in this process can
use them.
"""

import asyncio

from co_gherkin import given, when, then, before_scenario


class Calculator:
    def __init__(self):
        self.value = 0
        self.tape = []

    def add(self, amount: int):
        self.value += amount
        self.tape.append(f"{'+' if amount >= 0 else '-'} {abs(amount)}")


calculator = Calculator()


@before_scenario
def reset_calculator():
    calculator.__init__()


@given('I start with {int}')
def start_with(initial):
    calculator.value = initial


@when('I add {int}')
async def add(amount):
    # Handlers may be coroutines; the engine awaits them before the next step
    await asyncio.sleep(0)
    calculator.add(amount)


@when('I add these numbers:')
def add_numbers(table):
    header, *rows = table
    column = header.index('amount')
    for row in rows:
        calculator.add(int(row[column]))


@then('the result should be {int}')
def result_should_be(expected):
    assert calculator.value == expected, f"expected {expected}, got {calculator.value}"


@then('the tape should read:')
def tape_should_read(docstring):
    expected = [line.strip() for line in docstring.splitlines() if line.strip()]
    assert calculator.tape + [f"= {calculator.value}"] == expected
