from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


RSS2_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>Example News</title>
    <link>https://news.example.com/</link>
    <atom:link href="https://news.example.com/rss" rel="self" type="application/rss+xml"/>
    <item>
      <title>Markets rally after rate decision</title>
      <link>https://news.example.com/markets-rally</link>
      <description><![CDATA[<p>Stocks closed higher.</p>]]></description>
      <pubDate>Tue, 10 Jun 2025 04:00:00 GMT</pubDate>
    </item>
    <item>
      <title>  Storm warning issued  </title>
      <link>https://news.example.com/storm</link>
      <content:encoded><![CDATA[<p>Full storm coverage.</p>]]></content:encoded>
      <dc:date>2025-06-11T08:30:00+02:00</dc:date>
    </item>
    <item>
      <description>No title and no link here</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <link href="https://atom.example.com/"/>
  <entry>
    <title type="html">Atom entry one</title>
    <link rel="self" href="https://atom.example.com/entries/1.xml"/>
    <link rel="alternate" href="https://atom.example.com/entries/1"/>
    <id>urn:uuid:1</id>
    <published>2025-03-01T12:00:00Z</published>
    <summary>Summary one</summary>
  </entry>
  <entry>
    <title>Atom entry two</title>
    <link href="https://atom.example.com/entries/2"/>
    <updated>2025-03-02T12:00:00Z</updated>
    <content type="html">Body two</content>
  </entry>
</feed>
"""

RDF_FEED = b"""<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel rdf:about="https://rdf.example.com/">
    <title>Example RDF</title>
    <link>https://rdf.example.com/</link>
  </channel>
  <item rdf:about="https://rdf.example.com/a">
    <title>RDF item A</title>
    <link>https://rdf.example.com/a</link>
    <description>About A</description>
    <dc:date>2025-01-15T09:00:00Z</dc:date>
  </item>
  <item rdf:about="https://rdf.example.com/b">
    <title>RDF item B</title>
    <link>https://rdf.example.com/b</link>
  </item>
</rdf:RDF>
"""


@pytest.fixture
def rss2_feed() -> bytes:
    return RSS2_FEED


@pytest.fixture
def atom_feed() -> bytes:
    return ATOM_FEED


@pytest.fixture
def rdf_feed() -> bytes:
    return RDF_FEED
