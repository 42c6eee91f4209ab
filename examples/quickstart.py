"""Forgetsy Quickstart: what is trending right now."""

from datetime import datetime, timedelta, timezone

from forgetsy import Forgetsy

# 1. A client over a SQLite file
trends = Forgetsy(db_path="/tmp/forgetsy-quickstart.db")

# 2. A delta remembers observations for about a week
views = trends.delta("page_views", lifetime=timedelta(days=7))

# 3. Record observations, optionally backdated
now = datetime.now(timezone.utc)
views.increment("/pricing", at=now - timedelta(days=10))
views.increment("/pricing", at=now - timedelta(days=6))
views.increment("/blog/launch")
views.increment("/blog/launch")
views.increment("/docs", amount=3.0)

# 4. Trend scores: recent activity relative to each page's own history
for page, score in views.fetch(limit=10).items():
    print(f"{page:15} {score:.3f}")

# 5. Reopen later by name
print(trends.delta("page_views").fetch_bin("/docs"))
