#!/usr/bin/env python3
"""Interactive chat CLI for testing the dog-care advice service."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

PROFILE_FIELDS = ("name", "breed", "age", "weight", "allergies", "conditions", "home_location")
OWNER_FIELDS = ("name", "email", "phone")


class ChatCLI:
    """Interactive chat interface for the dog-care advice service."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.session_id: str | None = None
        self.location: dict[str, float] | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=90.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold dark_orange]🐾 paws4life.ai - Interactive Chat[/bold dark_orange]\n"
                "Ask anything about your dog's health and care.\n"
                "Commands: /help, /profile, /dogs, /owner, /ads, /location, /places, /clear, /quit",
                border_style="dark_orange",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to paws4life.ai[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                elif command == "/clear":
                    self.session_id = None
                    self.console.print("[yellow]🔄 Session cleared[/yellow]")
                elif command == "/profile":
                    self._edit_profile()
                elif command.startswith("/dogs"):
                    self._dogs(user_input.split()[1:])
                elif command == "/owner":
                    self._edit_owner()
                elif command == "/ads":
                    self._show_ads()
                elif command.startswith("/location"):
                    self._set_location(user_input.split()[1:])
                elif command == "/places":
                    self._show_places()
                elif command == "":
                    continue
                else:
                    response = self._send_message(user_input)
                    if response:
                        self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _ensure_session(self) -> str | None:
        """Create a session if this CLI does not have one yet."""
        if self.session_id:
            return self.session_id
        try:
            response = self.client.post(f"{self.base_url}/sessions")
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Could not start a session: {e}[/red]")
            return None
        self.session_id = response.json()["session_id"]
        return self.session_id

    def _send_message(self, message: str) -> dict | None:
        """Send message to the advice service."""
        try:
            payload: dict = {"message": message}
            if self.session_id:
                payload["session_id"] = self.session_id
            if self.location:
                payload["location"] = self.location

            self.console.print("[dim]💭 Thinking...[/dim]", end="")

            response = self.client.post(f"{self.base_url}/conversation", json=payload)

            # Clear the "thinking" message
            self.console.print("\r" + " " * 20 + "\r", end="\n")

            if response.status_code == 200:
                data = response.json()
                self.session_id = data.get("session_id")
                return data

            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return None

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _display_response(self, response: dict) -> None:
        """Display the answer with its sources."""
        assistant_text = response.get("response", "No response")
        title = "[bold green]🐶 paws4life.ai[/bold green]"
        if response.get("is_verified"):
            title += " [bold blue]✔ Verified[/bold blue]"

        self.console.print(Panel(Markdown(assistant_text), title=title, border_style="green", padding=(1, 2)))

        sources = response.get("sources") or []
        if sources:
            source_list = "\n".join(f"• {source['title'][:40]} - {source['uri']}" for source in sources)
            self.console.print(Panel(source_list, title="[dim]Sources[/dim]", border_style="dim"))

    def _edit_profile(self) -> None:
        """Prompt for each profile field and save the profile."""
        session_id = self._ensure_session()
        if not session_id:
            return

        current = self.client.get(f"{self.base_url}/profile/{session_id}").json()["profile"]
        updated = {}
        for field_name in PROFILE_FIELDS:
            label = field_name.replace("_", " ").title()
            updated[field_name] = Prompt.ask(f"[cyan]{label}[/cyan]", default=current.get(field_name) or "")

        response = self.client.put(f"{self.base_url}/profile/{session_id}", json=updated)
        if response.status_code != 200:
            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return

        data = response.json()
        for error in (data.get("age_error"), data.get("weight_error")):
            if error:
                self.console.print(f"[yellow]⚠ {error}[/yellow]")
        self.console.print(f"[green]✅ Saved profile for {data['profile']['name'] or 'your dog'}[/green]")

    def _dogs(self, args: list[str]) -> None:
        """List the household's dogs, or select one by its list number."""
        session_id = self._ensure_session()
        if not session_id:
            return

        data = self.client.get(f"{self.base_url}/dogs/{session_id}").json()
        dogs = data["dogs"]

        if args:
            try:
                number = int(args[0])
                if number < 1:
                    raise IndexError(number)
                dog = dogs[number - 1]
            except (IndexError, ValueError):
                self.console.print("[red]Usage: /dogs <number from the list>[/red]")
                return
            data = self.client.post(f"{self.base_url}/dogs/{session_id}/{dog['id']}/select").json()
            self.console.print(f"[green]🐶 Now asking about {dog['name']}[/green]")

        table = Table(title="Your Dogs")
        table.add_column("#", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Breed")
        table.add_column("Conditions")
        for number, dog in enumerate(data["dogs"], start=1):
            marker = " ✔" if dog["id"] == data["active_id"] else ""
            table.add_row(str(number), dog["name"] + marker, dog["breed"], dog["conditions"])
        self.console.print(table)

    def _edit_owner(self) -> None:
        """Prompt for the owner's details and save them."""
        session_id = self._ensure_session()
        if not session_id:
            return

        current = self.client.get(f"{self.base_url}/owner/{session_id}").json()["owner"]
        updated = {name: Prompt.ask(f"[cyan]{name.title()}[/cyan]", default=current[name]) for name in OWNER_FIELDS}

        response = self.client.put(f"{self.base_url}/owner/{session_id}", json=updated)
        if response.status_code != 200:
            self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
            return
        self.console.print("[green]✅ Saved your details[/green]")

    def _show_ads(self) -> None:
        """Show the sponsored listings ranked for the current profile."""
        session_id = self._ensure_session()
        if not session_id:
            return

        ads = self.client.get(f"{self.base_url}/ads/{session_id}").json()["ads"]
        table = Table(title="Sponsored")
        table.add_column("Type", style="dim")
        table.add_column("Title", style="bold")
        table.add_column("Description")
        for ad in ads:
            table.add_row(ad["type"], ad["title"], ad["description"])
        self.console.print(table)

    def _set_location(self, args: list[str]) -> None:
        """Set or clear the location sent with each message."""
        if not args:
            self.location = None
            self.console.print("[yellow]📍 Location cleared[/yellow]")
            return
        try:
            latitude, longitude = float(args[0]), float(args[1])
        except (IndexError, ValueError):
            self.console.print("[red]Usage: /location <latitude> <longitude>[/red]")
            return
        self.location = {"latitude": latitude, "longitude": longitude}
        self.console.print(f"[green]📍 Location set to {latitude}, {longitude}[/green]")

    def _show_places(self) -> None:
        """Show nearby points of interest for the current location."""
        params = self.location or {}
        data = self.client.get(f"{self.base_url}/places/nearby", params=params).json()
        if not data["available"]:
            self.console.print("[yellow]📍 Location not available. Set one with /location <lat> <lng>.[/yellow]")
            return

        table = Table(title="Nearby Services")
        table.add_column("Name", style="bold")
        table.add_column("Type")
        table.add_column("Rating")
        table.add_column("Lat/Lng", style="dim")
        for place in data["places"]:
            table.add_row(
                place["name"], place["type"], place.get("rating") or "", f"{place['latitude']:.4f}, {place['longitude']:.4f}"
            )
        self.console.print(table)

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /profile - Edit the active dog's profile
• /dogs [number] - List your dogs, or switch to one
• /owner - Edit your name and contact details
• /ads - Show sponsored listings for your dog
• /location <lat> <lng> - Share your location (no arguments clears it)
• /places - Show dog parks and vets near you
• /clear - Clear session and start over
• /quit or /exit - Exit the chat

[bold]Example Questions:[/bold]
1. "Is chocolate dangerous for dogs?"
2. "When does my puppy need a rabies vaccine?"
3. "Find an emergency vet near home"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
