import argparse
import asyncio
import curses
import html
from typing import Any, List, Optional, Set

from websockets.asyncio.client import ClientConnection, connect

import protocol


WS_URL: str = "ws://localhost:3000"
USERNAME: str = "guest"
RECONNECT_DELAY: float = 2.0


def format_event(event: str, data: Any) -> Optional[str]:
    """Render one server event as a chat line, or None if it has no line."""
    if not isinstance(data, dict):
        data = {}
    if event == protocol.RECEIVE_MESSAGE:
        return f"{data.get('username', 'Anonymous')}: {html.unescape(str(data.get('message', '')))}"
    if event == protocol.CONNECTION_STATUS:
        return f"[system] {data.get('message', 'connected')} ({data.get('activeUsers', '?')} online)"
    if event in (protocol.USER_JOINED, protocol.USER_LEFT):
        return f"[system] {data.get('message', '')} ({data.get('activeUsers', '?')} online)"
    if event == protocol.SERVER_SHUTDOWN:
        return f"[system] {data.get('message', 'server shutting down')}"
    if event == protocol.ERROR:
        return f"[system] error: {data.get('message', 'unknown error')}"
    return None


class ChatUI:
    def __init__(self, stdscr: "curses._CursesWindow", username: str) -> None:
        self.stdscr = stdscr
        self.username = username
        self.messages: List[str] = []
        self.typing: Set[str] = set()
        self.input_buffer: str = ""
        self.scroll_offset: int = 0  # 0 = follow tail; >0 = scrolled up by N lines

    def append_message(self, text: str) -> None:
        self.messages.extend(text.splitlines() or [""])
        if len(self.messages) > 1000:
            self.messages = self.messages[-1000:]

    def apply_event(self, event: str, data: Any) -> None:
        if event == protocol.USER_TYPING:
            name = data.get("username", "Someone") if isinstance(data, dict) else "Someone"
            if isinstance(data, dict) and data.get("isTyping"):
                self.typing.add(name)
            else:
                self.typing.discard(name)
            return
        if event == protocol.RECEIVE_MESSAGE and isinstance(data, dict):
            self.typing.discard(data.get("username", "Anonymous"))
        line = format_event(event, data)
        if line is not None:
            self.append_message(line)

    def typing_line(self) -> str:
        if not self.typing:
            return ""
        names = sorted(self.typing)
        verb = "is" if len(names) == 1 else "are"
        return f" {', '.join(names)} {verb} typing "

    def draw(self) -> None:
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()
        msg_area_h = max(1, height - 2)
        total = len(self.messages)
        max_offset = max(0, total - msg_area_h)
        self.scroll_offset = max(0, min(self.scroll_offset, max_offset))
        start = max(0, total - msg_area_h - self.scroll_offset)
        end = min(total, start + msg_area_h)
        for i, line in enumerate(self.messages[start:end]):
            if line.startswith("[system]"):
                attr = curses.color_pair(3) | curses.A_BOLD
            elif line.startswith(f"{self.username}:"):
                attr = curses.color_pair(2)
            else:
                attr = curses.color_pair(1)
            try:
                self.stdscr.addnstr(i, 0, line, max(1, width - 1), attr)
            except curses.error:
                pass
        try:
            self.stdscr.hline(height - 2, 0, ord("-"), max(1, width - 1))
            status = self.typing_line()
            if status:
                self.stdscr.addnstr(height - 2, 2, status, max(1, width - 3), curses.color_pair(3))
        except curses.error:
            pass
        prompt = f"{self.username}> {self.input_buffer}"
        try:
            self.stdscr.addnstr(height - 1, 0, prompt, max(1, width - 1), curses.color_pair(4) | curses.A_BOLD)
        except curses.error:
            pass
        self.stdscr.refresh()


async def keyboard_loop(ui: ChatUI, outgoing: "asyncio.Queue[tuple]") -> None:
    while True:
        ch = ui.stdscr.getch()
        if ch == -1:
            await asyncio.sleep(0.01)
            continue
        if ch in (curses.KEY_PPAGE, curses.KEY_UP):
            ui.scroll_offset += 1
        elif ch in (curses.KEY_NPAGE, curses.KEY_DOWN):
            ui.scroll_offset = max(0, ui.scroll_offset - 1)
        elif ch in (curses.KEY_ENTER, 10, 13):
            text = ui.input_buffer.strip()
            if text:
                await outgoing.put((protocol.SEND_MESSAGE, {"message": text, "username": ui.username}))
                ui.append_message(f"{ui.username}: {text}")
            if ui.input_buffer:
                await outgoing.put((protocol.TYPING, {"username": ui.username, "isTyping": False}))
            ui.input_buffer = ""
        elif ch in (curses.KEY_BACKSPACE, 127, 8):
            if ui.input_buffer:
                ui.input_buffer = ui.input_buffer[:-1]
                if not ui.input_buffer:
                    await outgoing.put((protocol.TYPING, {"username": ui.username, "isTyping": False}))
        elif 32 <= ch <= 126:
            if not ui.input_buffer:
                await outgoing.put((protocol.TYPING, {"username": ui.username, "isTyping": True}))
            ui.input_buffer += chr(ch)
        ui.draw()


async def receiver(ui: ChatUI, ws: ClientConnection) -> None:
    async for frame in ws:
        try:
            event, data = protocol.decode_event(frame)
        except protocol.FrameError as exc:
            ui.append_message(f"[system] bad frame from server: {exc}")
        else:
            ui.apply_event(event, data)
        if ui.scroll_offset == 0:
            ui.draw()


async def sender(ws: ClientConnection, outgoing: "asyncio.Queue[tuple]") -> None:
    while True:
        event, data = await outgoing.get()
        try:
            await ws.send(protocol.encode_event(event, data))
        except Exception:
            # put back and let the session reconnect
            await outgoing.put((event, data))
            raise


async def session_loop(ui: ChatUI, url: str, outgoing: "asyncio.Queue[tuple]") -> None:
    while True:
        try:
            async with connect(url) as ws:
                ui.append_message(f"[system] connected to {url}")
                ui.draw()
                tasks = [asyncio.create_task(receiver(ui, ws)), asyncio.create_task(sender(ws, outgoing))]
                try:
                    done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                for task in done:
                    task.result()
                ui.append_message("[system] connection closed; reconnecting in 2s")
        except Exception as exc:
            ui.append_message(f"[system] ws error: {exc!r}; reconnecting in 2s")
        ui.typing.clear()
        ui.draw()
        await asyncio.sleep(RECONNECT_DELAY)


async def run(stdscr: "curses._CursesWindow", url: str, username: str) -> None:
    curses.curs_set(1)
    if curses.has_colors():
        curses.start_color()
        try:
            curses.use_default_colors()
        except curses.error:
            pass
        # color pairs: 1=others, 2=self, 3=system, 4=prompt
        curses.init_pair(1, curses.COLOR_WHITE, -1)
        curses.init_pair(2, curses.COLOR_CYAN, -1)
        curses.init_pair(3, curses.COLOR_YELLOW, -1)
        curses.init_pair(4, curses.COLOR_GREEN, -1)
    stdscr.nodelay(True)
    stdscr.keypad(True)
    ui = ChatUI(stdscr, username)
    ui.append_message("[system] Press Enter to send, Backspace to edit")
    ui.draw()
    outgoing: "asyncio.Queue[tuple]" = asyncio.Queue()
    await asyncio.gather(
        session_loop(ui, url, outgoing),
        keyboard_loop(ui, outgoing),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Terminal client for the chat relay")
    parser.add_argument("--url", default=WS_URL, help="Relay server URL (default: %(default)s)")
    parser.add_argument("--name", default=USERNAME, help="Display name (default: %(default)s)")
    args = parser.parse_args()
    curses.wrapper(lambda stdscr: asyncio.run(run(stdscr, args.url, args.name)))


if __name__ == "__main__":
    main()
