"""
Utilities for turning browser-supplied image payloads into raw base64.

Web clients usually read files with `FileReader.readAsDataURL`, which yields
`data:<mime>;base64,<payload>`. The upstream API only accepts the payload.
"""


def strip_data_url_prefix(data: str) -> str:
    """
    Return everything after the last comma in `data`.

    Payloads without a comma are returned unchanged. Splitting on the last
    comma means any comma inside a malformed payload silently truncates it;
    valid base64 never contains one.
    """
    return data.rsplit(",", 1)[-1]
