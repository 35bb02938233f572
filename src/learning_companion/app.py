"""Interactive CLI application."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from learning_companion import workflow
from learning_companion.assessment import percentage, result_color, result_message
from learning_companion.config import Config
from learning_companion.db import clear_session, init_db, load_session, save_session
from learning_companion.errors import LearningCompanionError
from learning_companion.generation import AnthropicGenerator
from learning_companion.remediation import is_cycle_complete
from learning_companion.session import Session

console = Console()

LETTERS = ["a", "b", "c", "d"]
EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """User asked to leave the current quiz or flashcard run."""


def session_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> str:
    if choices is not None:
        kwargs["choices"] = list(choices) + ["q"]
        kwargs.setdefault("show_choices", False)
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def configure_logging(level: str = Config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Learning Companion[/bold]\n[dim]Summary, test and flashcards from your documents[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("upload", "Load a document (PDF, TXT, DOCX)"),
        ("summary", "Key takeaways of the current document"),
        ("quiz", "Take the test"),
        ("flashcards", "Review missed topics"),
        ("status", "Progress for the current document"),
        ("retake", "New test on the same document"),
        ("new", "Forget everything and start over"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_result(session: Session) -> None:
    result = session.test_result
    pct = percentage(result.score, result.total_questions)
    color = result_color(pct)
    console.print(Panel(
        f"[bold {color}]{result_message(pct)}[/bold {color}]\n\n"
        f"[bold]{pct}%[/bold]  {result.score} out of {result.total_questions} correct",
        title="Test Result", border_style=color,
    ))
    request = session.flashcard_request()
    if request.topics:
        console.print("\n[bold]Areas to Master:[/bold]")
        for i, topic in enumerate(request.topics, 1):
            console.print(f"  [magenta]{i}.[/magenta] {topic}")
        console.print("\n[dim]Use 'flashcards' to review them.[/dim]")
    else:
        console.print("[green]You've completely mastered this content![/green]")


def run_quiz_session(db_path: str, session: Session) -> None:
    questions = session.questions
    console.print(f"\n[bold]Test[/bold] — {len(questions)} questions [dim](q to leave)[/dim]\n")
    for i, q in enumerate(questions, 1):
        if q.id in session.answers:
            continue
        console.print(f"[bold]Q{i}.[/bold] {q.question}\n")
        for letter, option in zip(LETTERS, q.options):
            console.print(f"  [cyan]{letter})[/cyan] {option}")
        answer = session_prompt("\nYour answer", choices=LETTERS)
        is_correct = session.record_answer(q.id, LETTERS.index(answer.strip().lower()))
        save_session(db_path, session)
        if is_correct:
            console.print("[green]Correct![/green]")
        else:
            correct = LETTERS[q.correct_answer]
            console.print(f"[red]Incorrect.[/red] Answer: [green]{correct}) {q.options[q.correct_answer]}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    workflow.submit_test(session)
    save_session(db_path, session)
    show_result(session)


def run_flashcard_session(db_path: str, session: Session) -> None:
    cards = session.remaining_flashcards()
    if not cards:
        console.print("[green]All flashcards mastered![/green]")
        return
    console.print(f"\n[bold]Flashcards[/bold] — {len(cards)} to review [dim](q to leave)[/dim]\n")
    for i, card in enumerate(cards, 1):
        console.print(Panel(card.question, title=f"{card.topic} ({i}/{len(cards)})", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
        console.print(Panel(card.answer, border_style="green"))
        if session_prompt("Got it?", choices=["y", "n"]) == "y":
            session.mark_mastered(card.id)
            save_session(db_path, session)
        console.print()
    if is_cycle_complete(session.flashcards):
        console.print("[green]All flashcards mastered! Review complete.[/green]")
    else:
        console.print(f"[yellow]{len(session.remaining_flashcards())} card(s) left to master.[/yellow]")


def cmd_upload(db_path: str, session: Session, generate) -> None:
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    with console.status("Reading and summarizing..."):
        document = workflow.upload_document(session, file_path, generate)
    save_session(db_path, session)
    console.print(f"[green]Loaded {document.name} ({len(document.content)} chars)[/green]")
    cmd_summary(session)


def cmd_summary(session: Session) -> None:
    if session.document is None:
        console.print("[yellow]No document loaded. Use 'upload' first.[/yellow]")
        return
    console.print(f"\n[bold]Key Takeaways[/bold] — {session.document.name}\n")
    for i, point in enumerate(session.document.summary, 1):
        console.print(f"  [cyan]{i}.[/cyan] {point}")


def cmd_quiz(db_path: str, session: Session, generate) -> None:
    if session.test_result is not None:
        show_result(session)
        console.print("[dim]Use 'retake' for a new test.[/dim]")
        return
    if not session.questions:
        with console.status("Generating questions..."):
            workflow.prepare_quiz(session, generate)
        save_session(db_path, session)
    run_quiz_session(db_path, session)


def cmd_flashcards(db_path: str, session: Session, generate) -> None:
    if session.test_result is None:
        console.print("[yellow]Finish the test first.[/yellow]")
        return
    if not session.flashcards:
        if not session.flashcard_request().topics:
            console.print("[green]No missed topics, nothing to review.[/green]")
            return
        with console.status("Generating flashcards..."):
            workflow.prepare_flashcards(session, generate)
        save_session(db_path, session)
    run_flashcard_session(db_path, session)


def cmd_retake(db_path: str, session: Session, generate) -> None:
    with console.status("Generating questions..."):
        workflow.retake(session, generate)
    save_session(db_path, session)
    run_quiz_session(db_path, session)


def cmd_status(session: Session) -> None:
    if session.document is None:
        console.print("[yellow]No document loaded.[/yellow]")
        return
    table = Table(title=session.document.name)
    table.add_column("Step", style="cyan")
    table.add_column("Progress")
    table.add_row("Summary", f"{len(session.document.summary)} key points")
    if not session.document.content:
        table.add_row("Content", "[dim]not stored, upload again for full text[/dim]")
    table.add_row("Test", f"{len(session.answers)}/{len(session.questions)} answered")
    if session.test_result:
        r = session.test_result
        pct = percentage(r.score, r.total_questions)
        table.add_row("Score", f"[{result_color(pct)}]{r.score}/{r.total_questions} ({pct}%)[/{result_color(pct)}]")
    if session.flashcards:
        mastered = len(session.flashcards) - len(session.remaining_flashcards())
        table.add_row("Flashcards", f"{mastered}/{len(session.flashcards)} mastered")
    console.print(table)


def main():
    configure_logging()
    db_path = Config.DB_PATH
    init_db(db_path)
    session = load_session(db_path)
    generate = AnthropicGenerator()

    show_welcome()
    if session.document is not None:
        console.print(f"[dim]Resuming {session.document.name}[/dim]")

    while True:
        show_menu()
        default = "quiz" if session.document else "upload"
        choice = Prompt.ask("\n[bold]>[/bold]", default=default).strip().lower()
        try:
            if choice == "upload":
                cmd_upload(db_path, session, generate)
            elif choice == "summary":
                cmd_summary(session)
            elif choice == "quiz":
                cmd_quiz(db_path, session, generate)
            elif choice == "flashcards":
                cmd_flashcards(db_path, session, generate)
            elif choice == "status":
                cmd_status(session)
            elif choice == "retake":
                cmd_retake(db_path, session, generate)
            elif choice == "new":
                clear_session(db_path)
                session = Session()
                console.print("[green]Session cleared.[/green]")
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy learning![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Progress saved. Back to menu.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except LearningCompanionError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
