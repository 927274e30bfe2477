import asyncio
import logging
from pathlib import Path

import click

from . import __version__
from .core import ConfigManager, CoGherkinError
from .executor import FeatureRunner, RunnerConfig, StepDebugger
from .executor.report_collector import REPORT_FORMATS
from .gherkin import Step, StepType, parse_feature_file


def _load_steps(config: ConfigManager, steps) -> FeatureRunner:
    runner_config = RunnerConfig.from_config_manager(config)
    if steps:
        runner_config.steps = list(steps)
    return FeatureRunner(runner_config)


@click.group()
@click.option('--config', '-c', type=click.Path(), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """co-gherkin - run Gherkin feature files against registered step definitions"""
    ctx.obj = ConfigManager(Path(config) if config else None)

    if verbose or ctx.obj.get('general.debug'):
        level = logging.DEBUG
    else:
        level = getattr(logging, str(ctx.obj.get('general.log_level', 'INFO')).upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
def version():
    """Show version information"""
    click.echo(f"co-gherkin v{__version__}")


@cli.command()
@click.argument('feature_path', required=False)
@click.option('-d', '--directory', help='Feature files directory')
@click.option('-s', '--steps', multiple=True, help='Step module (dotted name or .py path); repeatable')
@click.option('--fail-fast', is_flag=True, help='Stop after the first failed scenario')
@click.option('-n', '--dry-run', is_flag=True, help='Resolve steps without running them')
@click.option('-r', '--report', multiple=True, type=click.Choice(REPORT_FORMATS), help='Report format; repeatable')
@click.option('-o', '--output-dir', help='Report output directory')
@click.pass_obj
def run(config, feature_path, directory, steps, fail_fast, dry_run, report, output_dir):
    """
    Execute feature files

    Examples:
        co-gherkin run login.feature -s steps/auth_steps.py
        co-gherkin run -d features/ -s myproject.steps -r junit
    """
    try:
        runner = _load_steps(config, steps)
        if fail_fast:
            runner.config.fail_fast = True
        if dry_run:
            runner.config.dry_run = True
        if report:
            runner.config.report_formats = list(report)
        if output_dir:
            runner.config.output_dir = output_dir

        if feature_path:
            click.echo(f"Executing feature: {feature_path}")
            results = asyncio.run(runner.execute_features([feature_path]))
        else:
            feature_dir = directory or runner.config.features_dir
            click.echo(f"Executing all features in: {feature_dir}")
            results = runner.execute_directory(feature_dir)
    except (CoGherkinError, FileNotFoundError, ImportError) as e:
        click.echo(f"Error executing features: {e}", err=True)
        raise SystemExit(1)

    summary = results['summary']
    click.echo("\nExecution Summary:")
    click.echo(f"  Features: {summary['features']}")
    click.echo(f"  Scenarios: {summary['total']}")
    click.echo(f"  Passed: {summary['passed']}")
    click.echo(f"  Failed: {summary['failed']}")
    click.echo(f"  Skipped: {summary['skipped']}")

    if summary['failed'] > 0 or results['status'] == 'failed':
        click.echo("\nFailed Scenarios:")
        for feature in results['features']:
            if feature['status'] != 'failed':
                continue
            click.echo(f"\n  Feature: {feature['feature']}")
            if 'error' in feature:
                click.echo(f"    {feature['error']}")
            for scenario in feature['scenarios']:
                if scenario['status'] == 'failed':
                    click.echo(f"    - {scenario['name']}")
                    if 'error' in scenario:
                        click.echo(f"      {scenario['error']}")

    for report_path in results.get('report_paths', []):
        click.echo(f"\nReport: {report_path}")

    raise SystemExit(0 if results['status'] == 'passed' else 1)


@cli.command()
@click.argument('feature_file', type=click.Path(exists=True))
def preview(feature_file):
    """Preview the parsed structure of a feature file"""
    feature = parse_feature_file(Path(feature_file).resolve())

    click.echo(f"Feature: {feature.name}")
    if feature.description:
        for line in feature.description.splitlines():
            click.echo(f"  {line}")

    def echo_steps(steps, indent):
        for step in steps:
            click.echo(f"{indent}{step.keyword} {step.text}")
            for row in step.data_table or []:
                click.echo(f"{indent}  | {' | '.join(row)} |")
            if step.docstring is not None:
                click.echo(f'{indent}  """')
                for line in step.docstring.splitlines():
                    click.echo(f"{indent}  {line}")
                click.echo(f'{indent}  """')

    if feature.background:
        click.echo("\n  Background:")
        echo_steps(feature.background, "    ")

    for scenario in feature.scenarios:
        click.echo(f"\n  Scenario: {scenario.name}")
        if scenario.tags:
            click.echo(f"    Tags: {' '.join('@' + tag for tag in scenario.tags)}")
        echo_steps(scenario.steps, "    ")

    click.echo(f"\nTotal scenarios: {len(feature.scenarios)}")


@cli.command('list-steps')
@click.option('-s', '--steps', multiple=True, help='Step module (dotted name or .py path); repeatable')
@click.pass_obj
def list_steps(config, steps):
    """List all registered step definitions"""
    try:
        runner = _load_steps(config, steps)
    except (FileNotFoundError, ImportError) as e:
        click.echo(f"Error loading steps: {e}", err=True)
        raise SystemExit(1)

    definitions = runner.registry.list_definitions()
    click.echo(f"Registered Step Definitions ({len(definitions)}):")
    click.echo("=" * 60)
    for defn in definitions:
        click.echo(f"  {defn['keyword']:<6} {defn['pattern']}")
        if defn['location']:
            click.echo(f"         {defn['function']} at {defn['location']}")


@cli.command()
@click.argument('step_text')
@click.option('-s', '--steps', multiple=True, help='Step module (dotted name or .py path); repeatable')
@click.pass_obj
def explain(config, step_text, steps):
    """Show which step definitions match STEP_TEXT"""
    try:
        runner = _load_steps(config, steps)
    except (FileNotFoundError, ImportError) as e:
        click.echo(f"Error loading steps: {e}", err=True)
        raise SystemExit(1)

    report = StepDebugger.explain(step_text, runner.registry)
    click.echo(f"Step: '{step_text}'")

    winner = next((entry for entry in report if entry['matched']), None)
    for entry in report:
        marker = "MATCH" if entry['matched'] else "  -  "
        click.echo(f"  [{marker}] {entry['keyword']:<6} {entry['pattern']}")
        if entry['matched']:
            click.echo(f"          arguments: {entry['arguments']}")

    if winner is None:
        click.echo("\nNo definition matches. Suggested step definition:\n")
        click.echo(StepDebugger.snippet(Step(keyword="*", type=StepType.ANY, text=step_text)))
        raise SystemExit(1)


def main():
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()
