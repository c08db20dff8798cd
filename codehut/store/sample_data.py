"""Sample marketplace used by the in-memory store and by ``python -m codehut.seed``."""
from datetime import datetime
from decimal import Decimal
from typing import List, Tuple

from codehut.core.security import get_password_hash
from codehut.modules.auth.models import User, UserRole
from codehut.modules.snippets.models import Snippet, SNIPPET_APPROVED
from codehut.modules.purchases.models import Purchase

DEMO_PASSWORD = "demo1234A!"
ADMIN_PASSWORD = "admin1234A!"


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _avatar(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={name.replace(' ', '+')}&background=random"


# (id, username, email, display name, bio, snippets, downloads, rating, role, joined, last login)
_USERS = [
    ("user-1", "JohnDoe", "john@example.com", "John Doe",
     "Full-stack developer with 5+ years of experience in React and Node.js",
     12, 245, 4.8, UserRole.ADMIN, "2024-01-15T10:00:00Z", "2024-03-15T10:00:00Z"),
    ("user-2", "SarahK", "sarah@example.com", "Sarah K",
     "Vue.js specialist and UI/UX enthusiast",
     8, 189, 4.9, UserRole.USER, "2024-02-20T14:30:00Z", "2024-03-14T14:30:00Z"),
    ("user-3", "DevMaster", "dev@example.com", "Dev Master",
     "Backend developer specializing in APIs and microservices",
     15, 312, 4.7, UserRole.MODERATOR, "2024-01-08T09:15:00Z", "2024-03-13T09:15:00Z"),
    ("user-4", "CSSGuru", "css@example.com", "CSS Guru",
     "CSS and design systems expert",
     20, 456, 4.6, UserRole.USER, "2023-12-10T16:45:00Z", "2024-03-12T16:45:00Z"),
    ("user-5", "ReactPro", "react@example.com", "React Pro",
     "React specialist with expertise in hooks and performance optimization",
     18, 387, 4.8, UserRole.USER, "2024-01-25T11:20:00Z", "2024-03-11T11:20:00Z"),
    ("user-6", "JSValidator", "js@example.com", "JS Validator",
     "JavaScript developer focused on form validation and utilities",
     10, 156, 4.5, UserRole.USER, "2024-03-05T08:30:00Z", "2024-03-10T08:30:00Z"),
    ("user-admin", "AdminUser", "admin@codehut.com", "Admin User",
     "Platform administrator managing CodeHut marketplace",
     5, 100, 5.0, UserRole.ADMIN, "2024-01-01T00:00:00Z", "2024-03-15T12:00:00Z"),
]

_SNIPPETS = [
    {
        "id": "snippet-1",
        "title": "React Login Form",
        "description": "Simple and responsive login component using React and Tailwind CSS "
                       "with form validation and loading states.",
        "code": (
            "export function LoginForm({ onSubmit }) {\n"
            "  const [email, setEmail] = useState('');\n"
            "  const [password, setPassword] = useState('');\n"
            "  return (\n"
            "    <form onSubmit={(e) => { e.preventDefault(); onSubmit(email, password); }}>\n"
            "      <input type=\"email\" value={email} onChange={(e) => setEmail(e.target.value)} />\n"
            "      <input type=\"password\" value={password} onChange={(e) => setPassword(e.target.value)} />\n"
            "      <button type=\"submit\">Sign In</button>\n"
            "    </form>\n"
            "  );\n"
            "}\n"
        ),
        "price": 5, "rating": 4.8, "author_id": "user-1", "author_username": "JohnDoe",
        "tags": ["React", "Form", "Authentication", "Tailwind"],
        "language": "JavaScript", "framework": "React", "downloads": 89,
        "created_at": "2024-01-20T12:00:00Z",
    },
    {
        "id": "snippet-2",
        "title": "Vue Dashboard Component",
        "description": "Complete dashboard with charts and analytics using Vue 3 and Chart.js "
                       "with real-time data updates.",
        "code": (
            "<template>\n"
            "  <div class=\"dashboard\"><canvas ref=\"revenueChart\"></canvas></div>\n"
            "</template>\n"
            "<script setup>\n"
            "import { ref, onMounted } from 'vue';\n"
            "import Chart from 'chart.js/auto';\n"
            "const revenueChart = ref(null);\n"
            "onMounted(() => new Chart(revenueChart.value, { type: 'line', data: { labels: [], datasets: [] } }));\n"
            "</script>\n"
        ),
        "price": 15, "rating": 4.9, "author_id": "user-2", "author_username": "SarahK",
        "tags": ["Vue", "Dashboard", "Charts", "Analytics"],
        "language": "JavaScript", "framework": "Vue", "downloads": 45,
        "created_at": "2024-02-25T09:30:00Z",
    },
    {
        "id": "snippet-3",
        "title": "Node.js API Middleware",
        "description": "Express middleware for authentication and rate limiting with JWT token "
                       "validation and Redis support.",
        "code": (
            "const jwt = require('jsonwebtoken');\n"
            "module.exports.authenticateToken = (req, res, next) => {\n"
            "  const token = (req.headers.authorization || '').split(' ')[1];\n"
            "  if (!token) return res.status(401).json({ error: 'Access token required' });\n"
            "  jwt.verify(token, process.env.JWT_SECRET, (err, user) => {\n"
            "    if (err) return res.status(403).json({ error: 'Invalid token' });\n"
            "    req.user = user;\n"
            "    next();\n"
            "  });\n"
            "};\n"
        ),
        "price": 8, "rating": 4.7, "author_id": "user-3", "author_username": "DevMaster",
        "tags": ["Node.js", "Express", "API", "Middleware", "Authentication"],
        "language": "JavaScript", "framework": "Express", "downloads": 67,
        "created_at": "2024-03-01T14:15:00Z",
    },
    {
        "id": "snippet-4",
        "title": "CSS Grid Layout System",
        "description": "Responsive grid system with modern CSS Grid and Flexbox, including "
                       "auto-fit columns and gap utilities.",
        "code": (
            ".grid-container {\n"
            "  display: grid;\n"
            "  gap: 1rem;\n"
            "  grid-template-columns: repeat(auto-fit, minmax(250px, 1fr));\n"
            "}\n"
            "@media (max-width: 768px) {\n"
            "  .grid-container { grid-template-columns: 1fr; }\n"
            "}\n"
        ),
        "price": 3, "rating": 4.6, "author_id": "user-4", "author_username": "CSSGuru",
        "tags": ["CSS", "Grid", "Responsive", "Layout"],
        "language": "CSS", "framework": None, "downloads": 123,
        "created_at": "2024-01-10T16:20:00Z",
    },
    {
        "id": "snippet-5",
        "title": "React Shopping Cart",
        "description": "Full-featured shopping cart with local storage, animations, and quantity "
                       "management using React hooks.",
        "code": (
            "export function useCart() {\n"
            "  const [items, setItems] = useState(() => JSON.parse(localStorage.getItem('cart') || '[]'));\n"
            "  useEffect(() => localStorage.setItem('cart', JSON.stringify(items)), [items]);\n"
            "  const total = items.reduce((sum, item) => sum + item.price * item.quantity, 0);\n"
            "  return { items, setItems, total };\n"
            "}\n"
        ),
        "price": 12, "rating": 4.8, "author_id": "user-5", "author_username": "ReactPro",
        "tags": ["React", "E-commerce", "Cart", "LocalStorage", "Animation"],
        "language": "JavaScript", "framework": "React", "downloads": 78,
        "created_at": "2024-02-15T11:45:00Z",
    },
    {
        "id": "snippet-6",
        "title": "JavaScript Form Validation",
        "description": "Comprehensive form validation library with custom rules, error messages, "
                       "and real-time validation.",
        "code": (
            "class FormValidator {\n"
            "  constructor(form) { this.form = form; this.rules = {}; }\n"
            "  addRule(name, rules) { this.rules[name] = rules; return this; }\n"
            "  validate() {\n"
            "    return Object.entries(this.rules).every(([name, rules]) =>\n"
            "      rules.every((rule) => rule(this.form.elements[name].value.trim())));\n"
            "  }\n"
            "}\n"
        ),
        "price": 6, "rating": 4.5, "author_id": "user-6", "author_username": "JSValidator",
        "tags": ["JavaScript", "Validation", "Forms", "Utility"],
        "language": "JavaScript", "framework": None, "downloads": 92,
        "created_at": "2024-03-10T13:20:00Z",
    },
]

_PURCHASES = [
    ("purchase-1", "user-1", "snippet-2", 15, "2024-03-01T10:30:00Z"),
    ("purchase-2", "user-2", "snippet-1", 5, "2024-03-02T14:15:00Z"),
]


def sample_users(rounds: int = 12) -> List[User]:
    demo_hash = get_password_hash(DEMO_PASSWORD, rounds)
    admin_hash = get_password_hash(ADMIN_PASSWORD, rounds)
    users = []
    for (user_id, username, email, name, bio, snippets, downloads, rating, role, joined, last_login) in _USERS:
        users.append(User(
            id=user_id,
            username=username,
            email=email,
            password_hash=admin_hash if user_id == "user-admin" else demo_hash,
            bio=bio,
            avatar=_avatar(name),
            role=role,
            total_snippets=snippets,
            total_downloads=downloads,
            rating=rating,
            is_active=True,
            email_verified=True,
            created_at=_ts(joined),
            updated_at=_ts(joined),
            last_login_at=_ts(last_login),
        ))
    return users


def sample_snippets() -> List[Snippet]:
    snippets = []
    for row in _SNIPPETS:
        created = _ts(row["created_at"])
        snippets.append(Snippet(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            code=row["code"],
            price=Decimal(row["price"]),
            rating=row["rating"],
            author_id=row["author_id"],
            author_username=row["author_username"],
            tags=list(row["tags"]),
            language=row["language"],
            framework=row["framework"],
            downloads=row["downloads"],
            status=SNIPPET_APPROVED,
            created_at=created,
            updated_at=created,
        ))
    return snippets


def sample_purchases() -> List[Purchase]:
    return [
        Purchase(id=pid, user_id=uid, snippet_id=sid, price=Decimal(price), purchase_date=_ts(when), order_id=None)
        for pid, uid, sid, price, when in _PURCHASES
    ]


def sample_marketplace(rounds: int = 12) -> Tuple[List[User], List[Snippet], List[Purchase]]:
    return sample_users(rounds), sample_snippets(), sample_purchases()
