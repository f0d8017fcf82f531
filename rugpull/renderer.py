"""PIL-based key renderer for the Rug Pull deck."""

from PIL import Image, ImageDraw, ImageFont

STATE_COLORS = {
    "idle": "#6b7280",
    "countdown": "#eab308",
    "active": "#3b82f6",
    "results": "#1e3a5f",
    "loss": "#ef4444",
    "cashed_out": "#22c55e",
    "no_investment": "#6b7280",
    "action": "#1e3a5f",
}

FONT_PATH = "/System/Library/Fonts/Helvetica.ttc"
SIZE = (96, 96)
UP = "#22c55e"
DOWN = "#ef4444"
LABEL = "#9ca3af"
PANEL = "#111827"
LINE_GAP = 4


def _font(size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(FONT_PATH, size)
    except OSError:
        return ImageFont.load_default()


def status_to_color(status: str) -> str:
    """Map a game state or round outcome to a hex color."""
    return STATE_COLORS.get(status, "#6b7280")


def format_money(amount: float, signed: bool = False) -> str:
    sign = ""
    if signed:
        sign = "+" if amount >= 0 else "-"
    elif amount < 0:
        sign = "-"
    amount = abs(amount)
    if amount < 1000:
        return f"{sign}${amount:.2f}"
    if amount < 1_000_000:
        return f"{sign}${amount / 1000:.1f}K"
    return f"{sign}${amount / 1_000_000:.1f}M"


def render_key(lines, bg_color: str, size: tuple[int, int] = SIZE) -> Image.Image:
    """Stack `(text, font_size, color)` lines in the middle of a key."""
    img = Image.new("RGB", size, bg_color)
    if not lines:
        return img

    draw = ImageDraw.Draw(img)
    fonts = [_font(font_size) for _, font_size, _ in lines]
    heights = []
    for font in fonts:
        left, top, right, bottom = font.getbbox("Ag")
        heights.append(bottom - top)

    y = (size[1] - sum(heights) - LINE_GAP * (len(lines) - 1)) // 2
    for (text, _, color), font, height in zip(lines, fonts, heights):
        draw.text((size[0] // 2, y), text, font=font, fill=color, anchor="mt")
        y += height + LINE_GAP
    return img


def render_label(label: str, value: str, value_color: str = "white",
                 value_size: int = 16, bg_color: str = PANEL,
                 size: tuple[int, int] = SIZE) -> Image.Image:
    """Small grey caption above one big value (BALANCE, BET, DAY)."""
    return render_key([(label, 10, LABEL), (value, value_size, value_color)], bg_color, size)


def _outline(img: Image.Image, color: str) -> Image.Image:
    w, h = img.size
    ImageDraw.Draw(img).rectangle([1, 1, w - 2, h - 2], outline=color, width=2)
    return img


def render_price(price: float, prev_price: float, size: tuple[int, int] = SIZE) -> Image.Image:
    color = UP if price >= prev_price else DOWN
    change = (price - 1.0) * 100
    img = render_key([
        ("PRICE", 10, LABEL),
        (f"${price:.3f}", 18, "white"),
        (f"{change:+.1f}%", 12, color),
    ], PANEL, size)
    return _outline(img, color)


def render_profit(profit: float, multiplier: float, size: tuple[int, int] = SIZE) -> Image.Image:
    color = UP if profit >= 0 else DOWN
    return render_key([
        ("P/L", 10, LABEL),
        (format_money(profit, signed=True), 16, color),
        (f"{multiplier:.2f}x", 12, LABEL),
    ], PANEL, size)


def render_action(label: str, sub: str, bg_color: str, enabled: bool = True,
                  size: tuple[int, int] = SIZE) -> Image.Image:
    """DOUBLE / CASH OUT / bet keys; dimmed when the action is unavailable."""
    if not enabled:
        return render_key([(label, 16, "#4b5563"), (sub, 12, "#374151")], "#1f2937", size)
    img = render_key([(label, 16, "white"), (sub, 12, "#d1d5db")], bg_color, size)
    return _outline(img, "white")


def render_chart(prices: list[float], size: tuple[int, int] = SIZE,
                 window: int = 48) -> Image.Image:
    """Line chart of the most recent prices, green up / red down."""
    img = Image.new("RGB", size, "#0f172a")
    d = ImageDraw.Draw(img)
    pts = prices[-window:]
    if len(pts) < 2:
        return img

    mn = min(min(pts), 1.0)
    mx = max(max(pts), 1.0)
    rng = mx - mn if mx > mn else 1.0
    top, bottom = 8, size[1] - 8
    left, right = 4, size[0] - 4
    step = (right - left) / (len(pts) - 1)

    def _y(p):
        return bottom - (p - mn) / rng * (bottom - top)

    # entry line at $1.00
    d.line([(left, _y(1.0)), (right, _y(1.0))], fill="#374151", width=1)

    coords = [(left + i * step, _y(p)) for i, p in enumerate(pts)]
    for i in range(1, len(coords)):
        col = UP if pts[i] >= pts[i - 1] else DOWN
        d.line([coords[i - 1], coords[i]], fill=col, width=2)
    return img


def render_result(outcome: str, profit: float, multiplier: float,
                  size: tuple[int, int] = SIZE) -> Image.Image:
    titles = {"loss": "RUGGED", "cashed_out": "CASHED", "no_investment": "NO BET"}
    return render_key([
        (titles.get(outcome, outcome.upper()), 14, "white"),
        (format_money(profit, signed=True), 14, "#dddddd"),
        (f"{multiplier:.2f}x", 11, "#aaaaaa"),
    ], status_to_color(outcome), size)
