from typing import Optional

# title, metadata, content, transcript, audio_link
full_template = """
<!DOCTYPE html>
<html>
<head>
  <!-- For overriding dark mode -->
  <meta name="color-scheme" content="light">
  <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #fdfefe; font-family: Georgia, 'Times New Roman', serif;
             line-height: 1.6; color: #333;">

<!-- Main Layout -->
<table width="100%" cellspacing="0" cellpadding="0">
  <tr>
    <td>
      <!-- Heading -->
      <table align="center" cellspacing="0" cellpadding="10"
        style="background-color: #f4f4f4; border-radius: 5px; width: 96%; max-width: 48rem; margin-top: 20px;">
        <tr>
          <td style="font-size: 20px; text-align: center; font-weight: bold; color: black;">
            {title}
          </td>
        </tr>
        <tr>
          <td style="text-align: center; font-style: italic;">
            Automatically written from a voice recording
          </td>
        </tr>
      </table>

      {metadata}

      <!-- Article -->
      {content}

      {transcript}

      {audio_link}

      <!-- Footer -->
      <table align="center" width="96%" cellspacing="0" cellpadding="10"
             style="max-width: 48rem; margin-top: 30px; border-top: 1px solid #eee;">
        <tr>
          <td style="font-size: 12px; color: #666;">
            This email was generated automatically by the Speech to Email pipeline with AI assistance.
          </td>
        </tr>
      </table>
    </td>
  </tr>
</table>

</body>
</html>
"""

# We do 96% to be mobile friendly
_content_begin = """
        <table align="center" width="96%" cellspacing="0" cellpadding="0"
                    style="max-width: 48rem; margin-top: 20px; border: 1px solid #ddd; background-color: white;
                    border-radius: 12px;">
"""


def main_content_template(content, heading: Optional[str] = None):
    heading_html = ""
    if bool(heading):
        heading_html = """
            <div style="font-size: 18px; font-weight: bold; margin-bottom: 10px;">{heading}</div>
        """.format(
            heading=heading
        )

    return (
        _content_begin
        + """
            <tr>
              <td style="padding: 20px;">
                {heading_html}
                {content}
              </td>
            </tr>
          </table>
    """.format(
            heading_html=heading_html, content=content
        )
    )


# heading, rows
table_template = (
    _content_begin
    + """
        <tr>
          <td style="padding: 20px; background-color: #e9ecef; font-size: 0.9em;">
            <div style="font-size: 18px; font-weight: bold; margin-bottom: 10px;">{heading}</div>
            <table width="100%" cellspacing="0" cellpadding="4">
              {rows}
            </table>
          </td>
        </tr>
      </table>
"""
)

# label, value
table_row_template = """
              <tr>
                <td align="left"><strong>{label}</strong></td>
                <td align="left">{value}</td>
              </tr>
"""

# transcript (already html escaped)
transcript_template = """
        <details>
          <summary style="cursor: pointer; font-weight: bold; margin: 20px 0 10px 0;">Show original transcript</summary>
          <div style="background-color: #f9f9f9; padding: 15px; border-left: 4px solid #007bff; font-size: 0.9em;">
            {transcript}
          </div>
        </details>
"""

# audio_url, expires_in_days
audio_link_template = """
        <div style="margin: 20px 0; text-align: center;">
          <a href="{audio_url}"
             style="display: inline-block; background-color: #007bff; color: white; padding: 10px 20px;
                    text-decoration: none; border-radius: 5px; font-weight: bold;">
            Listen to the original recording
          </a>
          <p style="font-size: 12px; color: #666; margin-top: 10px;">
            <em>Note: This link expires in {expires_in_days} days.</em>
          </p>
        </div>
"""
