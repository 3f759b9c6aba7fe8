"""
Tests for the HTML → Markdown converter.

No network or LLM needed; everything here is pure conversion.
"""

from bs4 import BeautifulSoup

from llm_extractor.converter import (
    ExtractorMarkdownConverter,
    clean_url,
    extract_main_html,
    html_to_markdown,
    resolve_url,
)
from llm_extractor.schemas import ConversionOptions


LONG_ARTICLE = " ".join(["The quick brown fox jumps over the lazy dog."] * 20)


# --- Basic conversion ---

def test_simple_html():
    markdown = html_to_markdown("<h1>Hello World</h1><p>This is a test</p>")
    assert markdown == "Hello World\n===========\n\nThis is a test"


def test_html_with_attributes():
    markdown = html_to_markdown('<div class="content"><h2 id="title">Title</h2><p>Paragraph</p></div>')
    assert "Title\n-----" in markdown
    assert "Paragraph" in markdown


def test_deeper_headings_use_hashes():
    assert html_to_markdown("<h3>Section</h3>") == "### Section"


def test_title_becomes_top_level_heading():
    html = "<html><head><title>My Page</title></head><body><p>Body</p></body></html>"
    markdown = html_to_markdown(html)
    assert markdown.startswith("My Page\n=======")
    assert markdown.endswith("Body")


def test_blank_line_runs_collapse():
    markdown = html_to_markdown("<p>One</p><div><br><br><br></div><p>Two</p><p></p><p></p><p>Three</p>")
    assert "\n\n\n" not in markdown
    assert markdown.startswith("One")
    assert markdown.endswith("Three")


def test_empty_input():
    assert html_to_markdown("") == ""
    assert html_to_markdown("<html><body></body></html>") == ""


# --- Links ---

def test_links():
    assert html_to_markdown('<a href="https://example.com">Example</a>') == "[Example](https://example.com)"


def test_link_text_and_url_are_escaped():
    html = '<a href="https://example.com/meeting-(11-12-24)">Meeting [11-12-24]</a>'
    assert html_to_markdown(html) == "[Meeting \\[11-12-24\\]](https://example.com/meeting-\\(11-12-24\\))"


def test_link_title():
    assert html_to_markdown('<a href="/x" title="Go there">X</a>') == '[X](/x "Go there")'


def test_link_without_href_keeps_text():
    assert html_to_markdown('<p><a name="top">Top</a> of page</p>') == "Top of page"


def test_link_whitespace_is_collapsed():
    markdown = html_to_markdown('<p>See <a href="/a">multi\n   line\ttext</a> here</p>')
    assert markdown == "See [multi line text](/a) here"


def test_emphasis_characters_are_escaped():
    assert html_to_markdown("<p>snake_case and 2*3</p>") == "snake\\_case and 2\\*3"


# --- Images ---

def test_images_are_discarded_by_default():
    assert html_to_markdown('<img src="image.jpg" alt="An image">') == ""
    assert html_to_markdown('<img src="image.jpg" alt="An image">', {"includeImages": False}) == ""


def test_images_are_kept_when_enabled():
    html = '<p>Text with an image: <img src="https://example.com/image.jpg" alt="Example image"></p>'

    with_images = html_to_markdown(html, {"include_images": True})
    without_images = html_to_markdown(html)

    assert "Text with an image:" in with_images
    assert "![Example image](https://example.com/image.jpg)" in with_images
    assert "Text with an image:" in without_images
    assert "https://example.com/image.jpg" not in without_images


def test_images_inside_figures_and_pictures():
    html = """
      <article>
        <h1>Test Article</h1>
        <p>First paragraph with <img src="image1.jpg" alt="First image"> embedded.</p>
        <figure>
          <img src="image2.jpg" alt="Second image">
          <figcaption>Figure caption</figcaption>
        </figure>
        <picture>
          <source srcset="image3-large.jpg" media="(min-width: 800px)">
          <img src="image3.jpg" alt="Third image">
        </picture>
        <p>Final paragraph.</p>
      </article>
    """

    with_images = html_to_markdown(html, ConversionOptions(include_images=True))
    assert "![First image](image1.jpg)" in with_images
    assert "![Second image](image2.jpg)" in with_images
    assert "![Third image](image3.jpg)" in with_images
    assert "Figure caption" in with_images
    assert "image3-large.jpg" not in with_images

    without_images = html_to_markdown(html)
    assert "![" not in without_images
    assert "Figure caption" in without_images
    assert "Final paragraph." in without_images


def test_image_without_src_is_omitted():
    assert html_to_markdown('<p>x<img alt="nothing"></p>', {"includeImages": True}) == "x"


def test_data_uri_images_are_not_resolved():
    html = '<img src="data:image/png;base64,AAAA" alt="dot">'
    markdown = html_to_markdown(html, {"includeImages": True}, "https://example.com/")
    assert markdown == "![dot](data:image/png;base64,AAAA)"


# --- URL handling ---

def test_relative_urls_are_resolved():
    html = """
      <a href="/about">About Us</a>
      <a href="products/item.html">Product</a>
      <a href="../blog/post.html">Blog Post</a>
      <img src="/images/logo.png" alt="Logo">
      <img src="assets/photo.jpg" alt="Photo">
    """
    markdown = html_to_markdown(html, {"includeImages": True}, "https://example.com/company/")

    assert "[About Us](https://example.com/about)" in markdown
    assert "[Product](https://example.com/company/products/item.html)" in markdown
    assert "[Blog Post](https://example.com/blog/post.html)" in markdown
    assert "![Logo](https://example.com/images/logo.png)" in markdown
    assert "![Photo](https://example.com/company/assets/photo.jpg)" in markdown


def test_absolute_urls_are_unchanged():
    html = """
      <a href="https://other-site.com/page">External Link</a>
      <a href="mailto:user@example.com">Email</a>
      <a href="invalid:url">Invalid Link</a>
      <img src="https://cdn.example.com/image.jpg" alt="CDN Image">
    """
    markdown = html_to_markdown(html, {"includeImages": True}, "https://example.com/")

    assert "[External Link](https://other-site.com/page)" in markdown
    assert "[Email](mailto:user@example.com)" in markdown
    assert "[Invalid Link](invalid:url)" in markdown
    assert "![CDN Image](https://cdn.example.com/image.jpg)" in markdown


def test_relative_urls_without_source_url():
    html = '<a href="/about">About Us</a> <img src="/images/logo.png" alt="Logo">'
    markdown = html_to_markdown(html, {"includeImages": True})

    assert "[About Us](/about)" in markdown
    assert "![Logo](/images/logo.png)" in markdown


def test_resolve_url():
    assert resolve_url("/about", "https://example.com") == "https://example.com/about"
    assert resolve_url("//cdn.example.com/a.js", "https://example.com/") == "https://cdn.example.com/a.js"
    assert resolve_url("mailto:a@b.c", "https://example.com/") == "mailto:a@b.c"
    assert resolve_url("/about", None) == "/about"


# --- URL cleaning ---

AMAZON_LINKS = """
  <a href="https://www.amazon.com/Product-Name-Here/dp/ABCDE01234/ref=sr_1_47?dib=abc123&qid=1640995200">Amazon Product</a>
  <a href="https://amazon.ca/Item-Name/dp/B12345/ref=sr_1_1?keywords=test">Amazon CA Product</a>
"""


def test_amazon_urls_are_cleaned_when_enabled():
    markdown = html_to_markdown(AMAZON_LINKS, {"cleanUrls": True})

    assert "[Amazon Product](https://www.amazon.com/Product-Name-Here/dp/ABCDE01234)" in markdown
    assert "[Amazon CA Product](https://amazon.ca/Item-Name/dp/B12345)" in markdown
    assert "/ref=" not in markdown
    assert "qid=" not in markdown


def test_amazon_urls_are_kept_by_default():
    for options in (None, {"cleanUrls": False}):
        markdown = html_to_markdown(AMAZON_LINKS, options)
        assert (
            "[Amazon Product](https://www.amazon.com/Product-Name-Here/dp/ABCDE01234/ref=sr_1_47?dib=abc123&qid=1640995200)"
            in markdown
        )


def test_other_urls_are_not_cleaned():
    html = """
      <a href="https://example.com/product?utm_source=test&ref=something">Regular Link</a>
      <a href="https://shop.example.com/item/ref=special">Shop Link</a>
      <img src="https://cdn.example.com/image.jpg?v=123&ref=cache" alt="Image">
    """
    markdown = html_to_markdown(html, {"includeImages": True, "cleanUrls": True})

    assert "[Regular Link](https://example.com/product?utm_source=test&ref=something)" in markdown
    assert "[Shop Link](https://shop.example.com/item/ref=special)" in markdown
    assert "![Image](https://cdn.example.com/image.jpg?v=123&ref=cache)" in markdown


def test_clean_url_hosts():
    assert clean_url("https://www.amazon.co.uk/dp/X1/ref=abc") == "https://www.amazon.co.uk/dp/X1"
    assert clean_url("https://notamazon.com/dp/X1/ref=abc") == "https://notamazon.com/dp/X1/ref=abc"
    assert clean_url("https://www.amazon.com/dp/X1") == "https://www.amazon.com/dp/X1"


# --- Tidy pass ---

def test_inert_elements_are_removed():
    html = """
      <nav>Navigation</nav>
      <script>var secret = 1;</script>
      <style>p { color: red; }</style>
      <form><label>Name</label><input name="q"><button>Send</button><textarea>typed</textarea></form>
      <p>Visible</p>
    """
    markdown = html_to_markdown(html)

    assert markdown == "Visible"


def test_elements_with_quotes_in_attribute_names_are_removed():
    markdown = html_to_markdown('<div a"b="1">Broken</div><p>Fine</p>')
    assert "Broken" not in markdown
    assert "Fine" in markdown


def test_header_and_footer_survive_without_main_extraction():
    html = """
      <html><body>
        <header>Header content</header>
        <article><h1>Main Content</h1><p>This is the main content</p></article>
        <footer>Footer content</footer>
      </body></html>
    """
    markdown = html_to_markdown(html)

    assert "Header content" in markdown
    assert "Main Content" in markdown
    assert "Footer content" in markdown


def test_removal_rules():
    """The markdown rules drop these tags even when the tidy pass didn't run."""
    soup = BeautifulSoup(
        "<p>a</p><script>x()</script><style>p{}</style><noscript>n</noscript>"
        "<textarea>t</textarea><svg><text>s</text></svg><p>b</p>",
        "html.parser",
    )
    markdown = ExtractorMarkdownConverter(ConversionOptions()).convert_soup(soup)

    assert markdown.split() == ["a", "b"]


# --- Main-content extraction ---

def test_main_content_drops_header_and_footer():
    html = """
      <html><body>
        <header>Header content</header>
        <article><h1>Main Content</h1><p>This is the main content</p></article>
        <footer>Footer content</footer>
      </body></html>
    """
    markdown = html_to_markdown(html, {"extractMainHtml": True})

    assert "Main Content" in markdown
    assert "This is the main content" in markdown
    assert "Header content" not in markdown
    assert "Footer content" not in markdown


def test_main_content_drops_boilerplate_patterns():
    html = f"""
      <div id="cookie-banner">We use cookies</div>
      <div class="Share-Buttons">Share this</div>
      <section class="related-stories">Read next</section>
      <aside>Aside box</aside>
      <main><p>{LONG_ARTICLE}</p></main>
    """
    markdown = html_to_markdown(html, {"extractMainHtml": True})

    assert LONG_ARTICLE in markdown
    for boilerplate in ("We use cookies", "Share this", "Read next", "Aside box"):
        assert boilerplate not in markdown


def test_extract_main_html_is_case_insensitive_and_keeps_tails():
    html = (
        '<html><body>'
        '<div class="Site-FOOTER">f</div>'
        '<div id="MainNav">n</div>'
        '<span data-lp-replacement-content="1">r</span>'
        '<p>Keep <span class="share-buttons">Share</span> this tail</p>'
        '</body></html>'
    )
    main_html = extract_main_html(html)

    assert "Site-FOOTER" not in main_html
    assert "MainNav" not in main_html
    assert "data-lp-replacement-content" not in main_html
    assert "share-buttons" not in main_html
    assert "this tail" in main_html


def test_main_content_falls_back_when_too_small():
    """Under 500 chars AND under 20% of the full conversion → full conversion."""
    html = f"""
      <div class="sidebar"><p>{LONG_ARTICLE}</p><p>{LONG_ARTICLE}</p><p>{LONG_ARTICLE}</p></div>
      <p>Short intro.</p>
    """
    full = html_to_markdown(html)
    markdown = html_to_markdown(html, {"extractMainHtml": True})

    assert markdown == full
    assert LONG_ARTICLE in markdown


def test_long_main_content_is_kept_next_to_a_huge_sidebar():
    """Over 500 chars is enough, even when it is under 20% of the full conversion."""
    story = " ".join(["Main story sentence."] * 62)
    sidebar = "".join(f"<p>{LONG_ARTICLE}</p>" for _ in range(30))
    html = f'<div class="sidebar">{sidebar}</div><main><p>{story}</p></main>'

    full = html_to_markdown(html)
    markdown = html_to_markdown(html, {"extractMainHtml": True})

    assert len(markdown) >= 500
    assert len(markdown) < 0.2 * len(full)
    assert markdown == html_to_markdown(f"<main><p>{story}</p></main>")
    assert markdown == story
    assert LONG_ARTICLE not in markdown


def test_main_content_falls_back_when_empty():
    html = "<footer>Only footer text</footer>"
    assert html_to_markdown(html, {"extractMainHtml": True}) == "Only footer text"


def test_short_page_keeps_main_content():
    """A small main section is fine when it is a large share of the page."""
    html = "<header>Site</header><p>One short paragraph.</p>"
    assert html_to_markdown(html, {"extractMainHtml": True}) == "One short paragraph."


# --- Failure handling ---

def test_deeply_nested_html_falls_back_to_text():
    depth = 3000
    html = "<div>" * depth + "deep text" + "</div>" * depth
    assert html_to_markdown(html) == "deep text"
