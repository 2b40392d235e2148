from __future__ import annotations

from html import escape
from typing import Sequence

from raster_contracts import Chunk, round_half_up

from .contracts import DEFAULT_DISPLAY_WIDTH


def _attr(value: str) -> str:
    return escape(value, quote=True)


def generate_chunk_html(chunk: Chunk, display_width: int) -> str:
    """
    One table row holding the chunk image and, when it has links, its image map.

    Map coordinates are in displayed pixels: chunk pixels scaled by
    display_width / chunk.width.
    """

    coord_scale = display_width / chunk.width
    display_height = round_half_up(chunk.height * coord_scale)
    usemap = f' usemap="#{chunk.map_name}"' if chunk.areas else ""
    src = f"data:image/png;base64,{chunk.base64_data()}"

    parts = [
        "<tr>",
        '<td style="padding:0;margin:0;line-height:0;font-size:0;border:none;">',
        f'<img src="{src}" width="{display_width}" height="{display_height}" alt="" '
        f'style="display:block;width:100%;height:auto;border:0;outline:none;margin:0;padding:0;"{usemap} />',
    ]
    if chunk.areas:
        parts.append(f'<map name="{chunk.map_name}">')
        for area in chunk.areas:
            coords = ",".join(
                str(round_half_up(v * coord_scale)) for v in (area.x1, area.y1, area.x2, area.y2)
            )
            parts.append(
                f'<area shape="rect" coords="{coords}" href="{_attr(area.href)}" '
                f'target="_blank" alt="{_attr(area.alt)}" />'
            )
        parts.append("</map>")
    parts.append("</td>")
    parts.append("</tr>")
    return "\n".join(parts)


def build_email_shell(body: str, display_width: int) -> str:
    dw = display_width
    return f"""<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<meta http-equiv="X-UA-Compatible" content="IE=edge">
<!--[if mso]>
<noscript>
<xml>
<o:OfficeDocumentSettings>
<o:PixelsPerInch>96</o:PixelsPerInch>
</o:OfficeDocumentSettings>
</xml>
</noscript>
<![endif]-->
<style type="text/css">
body,table,td,a{{margin:0;padding:0;border:0;border-spacing:0;}}
body{{-webkit-text-size-adjust:100%;-ms-text-size-adjust:100%;}}
table{{border-collapse:collapse;mso-table-lspace:0pt;mso-table-rspace:0pt;}}
td{{mso-line-height-rule:exactly;}}
img{{border:0;display:block;outline:none;text-decoration:none;-ms-interpolation-mode:bicubic;}}
a{{display:block;text-decoration:none;border:0;line-height:0;font-size:0;}}
@media (prefers-color-scheme:dark){{
.email-bg{{background-color:#1a1a1a!important;}}
}}
</style>
</head>
<body style="margin:0;padding:0;background-color:#ffffff;-webkit-text-size-adjust:100%;-ms-text-size-adjust:100%;" class="email-bg">
<table role="presentation" width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color:#ffffff;border-collapse:collapse;" class="email-bg">
<tr>
<td align="center" style="padding:0;border:none;">
<table role="presentation" width="{dw}" cellpadding="0" cellspacing="0" border="0" style="max-width:{dw}px;width:100%;border-collapse:collapse;">
{body}
</table>
</td>
</tr>
</table>
</body>
</html>"""


def build_preview_shell(body: str, display_width: int, title: str = "PDF2Email - Preview") -> str:
    dw = display_width
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{_attr(title)}</title>
<style>
body{{margin:0;padding:20px;background:#f0f0f0;display:flex;justify-content:center;}}
.container{{background:#fff;box-shadow:0 2px 10px rgba(0,0,0,0.1);max-width:{dw}px;}}
img{{display:block;max-width:100%;height:auto;}}
@media (prefers-color-scheme:dark){{
body{{background:#333;}}
.container{{background:#1a1a1a;}}
}}
</style>
</head>
<body>
<div class="container">
<table role="presentation" width="{dw}" cellpadding="0" cellspacing="0" border="0" style="max-width:{dw}px;width:100%;">
{body}
</table>
</div>
</body>
</html>"""


def generate_html(chunks: Sequence[Chunk], display_width: int | None = None) -> tuple[str, str]:
    """Return (preview_html, email_html) for the given chunks."""

    dw = display_width or (chunks[0].width if chunks else DEFAULT_DISPLAY_WIDTH)
    body = "\n".join(generate_chunk_html(chunk, dw) for chunk in chunks)
    return build_preview_shell(body, dw), build_email_shell(body, dw)
