"""Travel Journal terminal client - main UI entry point"""

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from .client import ApiError, SessionExpiredError, TravelJournalClient

console = Console()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DATE_FORMAT = "%Y-%m-%d"


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def parse_day(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def format_day(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d %b %Y")
    except ValueError:
        return value


class TravelJournalDashboard:
    """Main dashboard class for the travel journal terminal UI"""

    def __init__(self, client: Optional[TravelJournalClient] = None):
        self.client = client or TravelJournalClient()
        self.user: Optional[Dict[str, Any]] = None
        self.stories: List[Dict[str, Any]] = []
        self.filter_type = ""  # "", "search" or "date"
        self.search_query = ""
        self.date_range: Dict[str, Optional[date]] = {"from": None, "to": None}
        self.running = True

    # ---------------------- helpers ----------------------

    def _call(self, func: Callable, *args, **kwargs):
        """Run an API call; inline error messages, back to login on 401"""
        try:
            return func(*args, **kwargs)
        except SessionExpiredError as e:
            console.print(f"[bold red]{e.message}[/bold red]")
            self.user = None
            return None
        except ApiError as e:
            console.print(f"[bold red]✗ {e.message}[/bold red]")
            return None

    def _prompt_date(self, label: str, default: Optional[str] = None) -> Optional[date]:
        while True:
            raw = Prompt.ask(f"{label} (YYYY-MM-DD)", default=default)
            if not raw:
                return None
            parsed = parse_day(raw)
            if parsed:
                return parsed
            console.print("[red]Please enter a date as YYYY-MM-DD.[/red]")

    # ---------------------- auth screens ----------------------

    def login_screen(self) -> None:
        console.print(Panel(Align.center(Text("Travel Journal", style="bold white")), style="bold magenta", box=box.DOUBLE))
        choice = Prompt.ask("[L]ogin, [S]ign up or [Q]uit", choices=["l", "s", "q"], default="l")
        if choice == "q":
            self.running = False
        elif choice == "s":
            self.signup()
        else:
            self.login()

    def login(self) -> None:
        email = Prompt.ask("Email")
        if not validate_email(email):
            console.print("[red]Please enter a valid email address.[/red]")
            return
        password = Prompt.ask("Password", password=True)
        if not password:
            console.print("[red]Please enter the password[/red]")
            return
        user = self._call(self.client.login, email, password)
        if user is not None:
            self.user = user

    def signup(self) -> None:
        full_name = Prompt.ask("Full name")
        if not full_name:
            console.print("[red]Please enter your name[/red]")
            return
        email = Prompt.ask("Email")
        if not validate_email(email):
            console.print("[red]Please enter a valid email address.[/red]")
            return
        password = Prompt.ask("Password", password=True)
        if not password:
            console.print("[red]Please enter the password[/red]")
            return
        user = self._call(self.client.create_account, full_name, email, password)
        if user is not None:
            self.user = user

    # ---------------------- story list ----------------------

    def refresh(self) -> None:
        """Reload the list, keeping the active search or date filter"""
        if self.filter_type == "search" and self.search_query:
            stories = self._call(self.client.search, self.search_query)
        elif self.filter_type == "date" and self.date_range["from"] and self.date_range["to"]:
            stories = self._call(self.client.filter_by_date, self.date_range["from"], self.date_range["to"])
        else:
            self.filter_type = ""
            stories = self._call(self.client.get_all_stories)
        if stories is not None:
            self.stories = stories

    def empty_message(self) -> str:
        if self.filter_type == "search":
            return "Oops! No stories found matching your search."
        if self.filter_type == "date":
            return "No stories found in the given date range."
        return "Start creating your first travel story! Press [A] to add your memories."

    def show_stories(self) -> None:
        console.clear()
        name = (self.user or {}).get("fullName", "")
        console.print(Panel(Align.center(Text(f"Travel Journal · {name}", style="bold white")), style="bold magenta", box=box.DOUBLE))

        if self.filter_type == "search":
            console.print(f"[cyan]Search results for[/cyan] \"{self.search_query}\"")
        elif self.filter_type == "date":
            console.print(
                f"[cyan]Travel stories from[/cyan] {self.date_range['from']} [cyan]to[/cyan] {self.date_range['to']}"
            )

        if not self.stories:
            console.print(Panel(self.empty_message(), border_style="yellow"))
            return

        table = Table(box=box.ROUNDED, show_header=True)
        table.add_column("#", style="dim", width=3)
        table.add_column("★", width=2)
        table.add_column("Title", style="bold")
        table.add_column("Location", style="cyan")
        table.add_column("Visited", style="green")
        table.add_column("Story")
        for i, item in enumerate(self.stories, start=1):
            story = item.get("story", "")
            table.add_row(
                str(i),
                "[red]♥[/red]" if item.get("isFavourite") else "",
                item.get("title", ""),
                item.get("visitedLocation", ""),
                format_day(item.get("visitedDate")),
                story if len(story) <= 60 else story[:57] + "...",
            )
        console.print(table)

    def show_menu(self) -> None:
        menu_text = """
[bold cyan]Menu:[/bold cyan]

[V] View story   [A] Add story   [E] Edit story   [D] Delete story
[F] Toggle favourite   [S] Search   [T] Filter by dates   [C] Clear filter
[R] Refresh   [L] Logout   [Q] Quit
"""
        console.print(Panel(menu_text, title="Menu", border_style="cyan"))

    def pick_story(self) -> Optional[Dict[str, Any]]:
        if not self.stories:
            console.print("[yellow]No stories to choose from.[/yellow]")
            return None
        raw = Prompt.ask("Story number")
        try:
            index = int(raw)
        except ValueError:
            index = 0
        if not 1 <= index <= len(self.stories):
            console.print("[red]No story with that number.[/red]")
            return None
        return self.stories[index - 1]

    # ---------------------- actions ----------------------

    def view_story(self) -> None:
        item = self.pick_story()
        if not item:
            return
        body = Text()
        body.append(f"{item.get('visitedLocation', '')} · {format_day(item.get('visitedDate'))}\n", style="cyan")
        body.append(f"{item.get('imageUrl', '')}\n\n", style="dim")
        body.append(item.get("story", ""))
        console.print(Panel(body, title=item.get("title", ""), border_style="magenta"))
        Prompt.ask("Press Enter to continue", default="")

    def add_story(self) -> None:
        title = Prompt.ask("Title")
        visited_date = self._prompt_date("Visited date", default=date.today().strftime(DATE_FORMAT))
        location = Prompt.ask("Visited location")
        story = Prompt.ask("Story")
        image_path = Prompt.ask("Image file (path, blank for placeholder)", default="")

        if not title or not story or not location or not visited_date:
            console.print("[red]Please fill in the title, story, location and date.[/red]")
            return

        image_url = self.client.placeholder_image_url
        if image_path:
            image_url = self._call(self.client.upload_image, image_path)
            if image_url is None:
                return
        created = self._call(self.client.add_story, title, story, location, image_url, visited_date)
        if created:
            console.print("[bold green]✓ Story Added Successfully[/bold green]")
            self.refresh()
        elif image_path:
            self._call(self.client.delete_image, image_url)

    def edit_story(self) -> None:
        item = self.pick_story()
        if not item:
            return
        title = Prompt.ask("Title", default=item.get("title", ""))
        default_day = None
        if item.get("visitedDate"):
            default_day = datetime.fromisoformat(item["visitedDate"].replace("Z", "+00:00")).strftime(DATE_FORMAT)
        visited_date = self._prompt_date("Visited date", default=default_day)
        location = Prompt.ask("Visited location", default=item.get("visitedLocation", ""))
        story = Prompt.ask("Story", default=item.get("story", ""))
        if not title or not story or not location or not visited_date:
            console.print("[red]Please fill in the title, story, location and date.[/red]")
            return

        old_image_url: Optional[str] = item.get("imageUrl")
        image_url = old_image_url
        image_choice = Prompt.ask("Image: [K]eep, [R]eplace or [D]elete", choices=["k", "r", "d"], default="k")
        if image_choice == "r":
            image_path = Prompt.ask("New image file (path)")
            image_url = self._call(self.client.upload_image, image_path)
            if image_url is None:
                return
        elif image_choice == "d":
            image_url = None

        updated = self._call(self.client.edit_story, item["_id"], title, story, location, image_url, visited_date)
        if not updated:
            # The story still points at the old image; drop the unused upload
            if image_choice == "r":
                self._call(self.client.delete_image, image_url)
            return

        # The old file goes only once the story no longer references it
        if image_choice in ("r", "d") and old_image_url and old_image_url != image_url:
            self._call(self.client.delete_image, old_image_url)
        console.print("[bold green]✓ Story Updated Successfully[/bold green]")
        self.refresh()

    def delete_story(self) -> None:
        item = self.pick_story()
        if not item or not Confirm.ask(f"Delete \"{item.get('title', '')}\"?", default=False):
            return
        deleted = self._call(self.client.delete_story, item["_id"])
        if deleted:
            console.print("[bold red]Story Deleted Successfully[/bold red]")
        elif deleted is False:
            console.print("[yellow]Travel story not found[/yellow]")
        self.refresh()

    def toggle_favourite(self) -> None:
        item = self.pick_story()
        if not item:
            return
        updated = self._call(self.client.update_is_favourite, item["_id"], not item.get("isFavourite", False))
        if updated:
            console.print("[bold green]✓ Story Updated Successfully[/bold green]")
            self.refresh()

    def search(self) -> None:
        query = Prompt.ask("Search stories")
        if not query:
            return
        stories = self._call(self.client.search, query)
        if stories is not None:
            self.filter_type = "search"
            self.search_query = query
            self.stories = stories

    def filter_by_date(self) -> None:
        start = self._prompt_date("From")
        end = self._prompt_date("To")
        if not start or not end:
            return
        stories = self._call(self.client.filter_by_date, start, end)
        if stories is not None:
            self.filter_type = "date"
            self.date_range = {"from": start, "to": end}
            self.stories = stories

    def clear_filter(self) -> None:
        self.filter_type = ""
        self.search_query = ""
        self.date_range = {"from": None, "to": None}
        self.refresh()

    def logout(self) -> None:
        self.client.logout()
        self.user = None
        self.stories = []

    # ---------------------- main loop ----------------------

    def handle_choice(self, choice: str) -> None:
        actions = {
            "v": self.view_story,
            "a": self.add_story,
            "e": self.edit_story,
            "d": self.delete_story,
            "f": self.toggle_favourite,
            "s": self.search,
            "t": self.filter_by_date,
            "c": self.clear_filter,
            "r": self.refresh,
            "l": self.logout,
        }
        if choice == "q":
            self.running = False
            return
        action = actions.get(choice)
        if action:
            action()
        else:
            console.print("[red]Unknown option[/red]")

    def run(self) -> None:
        while self.running:
            if not self.user:
                if self.client.is_authenticated:
                    self.user = self._call(self.client.get_user)
                if not self.user:
                    self.login_screen()
                    if self.user:
                        self.refresh()
                    continue
                self.refresh()

            self.show_stories()
            self.show_menu()
            self.handle_choice(Prompt.ask("Choose", default="r").strip().lower())

        console.print("[bold blue]Goodbye![/bold blue]")


def main() -> None:
    try:
        TravelJournalDashboard().run()
    except KeyboardInterrupt:
        console.print("\n[bold blue]Goodbye![/bold blue]")


if __name__ == "__main__":
    main()
