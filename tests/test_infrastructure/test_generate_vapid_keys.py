"""Generated VAPID keys load back into the dispatcher's key format"""
import re

from app.infrastructure.webpush.vapid import load_vapid_keys
from generate_vapid_keys import main


def test_generated_keys_are_usable(capsys):
    main()
    out = capsys.readouterr().out

    public = re.search(r"^VAPID_PUBLIC_KEY=(\S+)$", out, re.M).group(1)
    private = re.search(r"^VAPID_PRIVATE_KEY=(\S+)$", out, re.M).group(1)

    keys = load_vapid_keys(private, public, "mailto:ops@example.com")
    assert keys.public_key == public
    assert "INSERT INTO app_secrets" in out
