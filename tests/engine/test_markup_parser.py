from __future__ import annotations

from fuuka_harvester.engine import MarkupParser

ARTICLE = """
<html><body><div id="main">
<article class="post doc_id_555 post_is_op" id="123">
  <div class="post_wrapper">
    <header><div class="post_data">
      <h2 class="post_title">Subject line</h2>
      <span class="post_poster_data">
        <span class="post_author">Bob</span>
        <span class="post_tripcode">!Trip</span>
        <span class="poster_hash">ID:abc</span>
      </span>
      <span class="time_wrap"><time datetime="2020-01-02T03:04:05+00:00">01/02/20(Thu)03:04:05</time></span>
      <span class="post_controls"><a href="/x/thread/100/#123" data-post="123">No.</a></span>
    </div></header>
    <div class="thread_image_box">
      <a href="https://i.example.org/x/img.jpg" class="thread_image_link">
        <img class="post_image" src="https://i.example.org/x/thumb.jpg">
      </a>
    </div>
    <div class="post_file"><a class="post_file_filename">img.jpg</a></div>
    <div class="text">Hello <span class="greentext">&gt;world</span><br>line</div>
  </div>
</article>
<article class="post doc_id_556">
  <span class="post_controls"><a href="#">No.4567</a></span>
</article>
</div></body></html>
"""


def test_parses_full_article() -> None:
    posts = MarkupParser().parse_page(ARTICLE)

    assert len(posts) == 2
    post = posts[0]
    assert post["doc_id"] == "555"
    assert post["num"] == "123"
    assert post["thread_num"] == "100"
    assert post["board"] == "x"
    assert post["op"] == "1"
    assert post["timestamp"] == "2020-01-02T03:04:05+00:00"
    assert post["fourchan_date"] == "01/02/20(Thu)03:04:05"
    assert post["name"] == "Bob"
    assert post["trip"] == "!Trip"
    assert post["title"] == "Subject line"
    assert post["poster_hash"] == "ID:abc"
    assert post["comment"].startswith("Hello")
    assert ">world" in post["comment"]
    assert post["comment_html"].startswith("Hello <span")
    assert post["comment_html"].endswith("line")
    assert post["media_url"] == "https://i.example.org/x/img.jpg"
    assert post["thumb_url"] == "https://i.example.org/x/thumb.jpg"
    assert post["media_filename"] == "img.jpg"
    assert post["_source"] == "markup"


def test_number_falls_back_to_link_text() -> None:
    post = MarkupParser().parse_page(ARTICLE)[1]

    assert post["num"] == "4567"
    assert post["thread_num"] is None
    assert post["board"] is None
    assert post["op"] == "0"
    assert post["comment"] is None
    assert post["timestamp"] is None


def test_page_without_articles() -> None:
    assert MarkupParser().parse_page("<html><body></body></html>") == []


def test_comment_html_keeps_only_the_comment_body() -> None:
    html = (
        '<article class="post doc_id_1">'
        '<div class="text" data-note="a>b">a &lt; b <span class="greentext">&gt;quote</span><br>c</div>'
        "</article>"
    )

    post = MarkupParser().parse_page(html)[0]

    assert post["comment_html"].startswith("a &lt; b <span")
    assert "&gt;quote</span>" in post["comment_html"]
    assert post["comment_html"].endswith("c")
    assert "data-note" not in post["comment_html"]
    assert post["comment"] == "a < b >quotec"
