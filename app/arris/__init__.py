"""Scrape + export for the Arris SB family connection status page.

Only ever tested against the `cmconnectionstatus.html` page that uses the `login_<b64>` / `ct_<token>` query-string
auth dance. From screenshots found online, most SB modems with that page look more or less the same so this
will probably work beyond the one model it was written against.
"""
