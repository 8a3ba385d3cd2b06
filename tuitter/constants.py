"""Centralized application constants — single source of truth for hardcoded values."""

# --- Session ---
COOKIE_NAME = "session_id"
SESSION_TOKEN_BYTES = 48  # hex-encoded to 96 characters
SESSION_TOKEN_LENGTH = SESSION_TOKEN_BYTES * 2

# --- Tuits ---
TUIT_STATUS_PUBLISHED = "published"
TUIT_STATUS_DISABLED = "disabled"
TUIT_BODY_MAX_LENGTH = 255
COUNTER_COLUMNS = ("views", "likes", "retuits", "bookmarks", "comments", "quotes")

# --- Users ---
NUKED_MARKER = "nuked"
BAN_TYPES = ("nuke",)
DESCRIPTION_MAX_LENGTH = 160

# Characters that render as nothing; a body may not start with them and they
# are stripped from the end of free text.
INVISIBLE_CHARACTERS = frozenset(
    "\u2800\u034f\u115f\u1160\u17b4\u17b5\u3164\uffa0"
)

RESERVED_NAMES = frozenset({
    "account", "admin", "administrator", "all", "analytics", "anonymous",
    "api", "app", "apps", "auth", "authentication", "avatar", "backup",
    "banner", "beta", "blog", "bookmarks", "checkout", "config", "content",
    "create", "css", "dashboard", "docs", "download", "draft", "edit",
    "editor", "email", "faq", "features", "feed", "guest", "guidelines",
    "help", "home", "init", "interface", "js", "login", "logout", "me",
    "moderator", "new", "notifications", "password", "privacy", "profile",
    "recover", "register", "root", "security", "sessions", "settings",
    "signup", "status", "support", "system", "terms", "tuit", "tuits",
    "user", "users",
})
RESERVED_NAME_PREFIXES = ("favicon", "manifest")

# --- Request logging ---
HEADERS_TO_REDACT = ("authorization", "cookie")
HEADERS_TO_OMIT = ("access-control-allow-headers", "forwarded")
BODY_FIELDS_TO_REDACT = ("email", "password")
LOGGED_BODY_MAX_LENGTH = 300
