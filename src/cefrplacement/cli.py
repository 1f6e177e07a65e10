"""CLI entry point for cefrplacement."""

import logging
import random

import click


@click.group()
@click.option("--verbose", is_flag=True, help="Show difficulty decisions as they happen")
def main(verbose: bool) -> None:
    """cefrplacement: adaptive CEFR placement test."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
def banks() -> None:
    """List available question banks."""
    from cefrplacement.banks.registry import BankRegistry
    from cefrplacement.config.settings import Settings

    registry = BankRegistry(extra_dirs=Settings.load().bank_dirs)
    for bank in registry.list_banks():
        click.echo(f"  {bank.id}: {bank.title} (v{bank.version})")


@main.command()
@click.option("--bank", "bank_id", default="core_grammar", show_default=True)
@click.option("--learner", default="anonymous", show_default=True)
@click.option("--seed", type=int, default=None, help="Seed question selection")
def take(bank_id: str, learner: str, seed) -> None:
    """Take a placement test in the terminal."""
    from cefrplacement.banks.registry import BankRegistry
    from cefrplacement.config.settings import Settings
    from cefrplacement.engine.errors import AssessmentError, InvalidAnswerSubmission
    from cefrplacement.engine.session import AssessmentSession
    from cefrplacement.state.results import ResultStore

    settings = Settings.load()
    registry = BankRegistry(extra_dirs=settings.bank_dirs)
    try:
        bank = registry.load(bank_id)
    except ValueError as e:
        raise click.ClickException(str(e))

    if seed is None:
        try:
            seed = settings.assessment.get_seed()
        except ValueError as e:
            raise click.ClickException(str(e))
    session = AssessmentSession(config=settings.assessment, rng=random.Random(seed))
    try:
        question = session.start(bank.questions)
    except AssessmentError as e:
        raise click.ClickException(str(e))

    while question is not None:
        state = session.state
        click.echo(f"\n[{state.questions_asked + 1}/{state.max_questions}] {question.prompt}")
        if question.options:
            for i, option in enumerate(question.options, 1):
                click.echo(f"  {i}. {option}")

        answer = click.prompt("Your answer", default="", show_default=False)
        if question.options and answer.strip().isdigit():
            idx = int(answer.strip()) - 1
            if 0 <= idx < len(question.options):
                answer = question.options[idx]
        try:
            session.submit_answer(answer)
        except InvalidAnswerSubmission:
            click.echo("Please enter an answer.")
            continue
        question = session.advance()

    result = session.result
    click.echo("")
    click.echo(result.message)
    for line in result.next_steps:
        click.echo(f"  - {line}")
    if result.weak_categories:
        click.echo(f"Focus areas: {', '.join(result.weak_categories)}")

    store = ResultStore(db_path=settings.data_dir / "results.db")
    attempt_id = store.save_result(learner, result, session.state.history)
    click.echo(f"Saved as attempt {attempt_id}")


@main.command()
@click.option("--learner", default="anonymous", show_default=True)
def history(learner: str) -> None:
    """Show past placement results."""
    from cefrplacement.config.settings import Settings
    from cefrplacement.state.results import ResultStore

    settings = Settings.load()
    store = ResultStore(db_path=settings.data_dir / "results.db")
    results = store.list_results(learner)
    if not results:
        click.echo("No results yet.")
        return
    for r in results:
        click.echo(
            f"  {r.completed_at[:16]}  {r.level}  "
            f"{r.confidence:.0f}% confidence  score {r.score:.1f}  "
            f"({' → '.join(r.progression)})"
        )
    profile_level = store.get_profile_level(learner)
    if profile_level:
        click.echo(f"Profile level: {profile_level}")
