"""
XML writer for the BuyAdwiser product feed.
"""

import re
from typing import List
from xml.dom import minidom

from .models import AttributeValue, Cdata, FeedRecord, ListField


ROOT_TAG = 'products'
PRODUCT_TAG = 'product'

# Characters not allowed in XML 1.0 documents
_ILLEGAL_XML_CHARS = re.compile(
    '[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]'
)


def clean_xml_text(text: str) -> str:
    return _ILLEGAL_XML_CHARS.sub('', text)


def _text_node(doc: minidom.Document, value) -> minidom.Node:
    if isinstance(value, Cdata):
        text = clean_xml_text(value.text)
        # ']]>' cannot live inside a CDATA section; fall back to escaped text
        if ']]>' in text:
            return doc.createTextNode(text)
        return doc.createCDATASection(text)
    if isinstance(value, bool):
        return doc.createTextNode('true' if value else 'false')
    return doc.createTextNode(clean_xml_text(str(value)))


def _append_value(doc: minidom.Document, parent: minidom.Element, tag: str, value) -> None:
    if isinstance(value, ListField):
        wrapper = doc.createElement(tag)
        for item in value.items:
            _append_value(doc, wrapper, value.child_tag, item)
        parent.appendChild(wrapper)
        return

    if isinstance(value, AttributeValue):
        elem = doc.createElement(tag)
        if value.taxonomy:
            elem.setAttribute('taxonomy', value.taxonomy)
        elem.setAttribute('name', value.name)
        value_elem = doc.createElement('value')
        value_elem.appendChild(_text_node(doc, Cdata(value.value)))
        elem.appendChild(value_elem)
        parent.appendChild(elem)
        return

    if isinstance(value, dict):
        parent.appendChild(_record_element(doc, tag, value))
        return

    elem = doc.createElement(tag)
    node = _text_node(doc, value)
    # Plain empty strings become empty elements; CDATA is always written
    if isinstance(value, Cdata) or node.data:
        elem.appendChild(node)
    parent.appendChild(elem)


def _record_element(doc: minidom.Document, tag: str, record: FeedRecord) -> minidom.Element:
    elem = doc.createElement(tag)
    for field_name, value in record.items():
        if value is None:
            continue
        _append_value(doc, elem, field_name, value)
    return elem


def write_feed_xml(records: List[FeedRecord]) -> str:
    """
    Serialize feed records into the products XML document.

    Args:
        records: Ordered feed records, one per top-level <product>

    Returns:
        UTF-8 XML document as a string, indented with two spaces
    """
    impl = minidom.getDOMImplementation()
    doc = impl.createDocument(None, ROOT_TAG, None)
    root = doc.documentElement

    for record in records:
        root.appendChild(_record_element(doc, PRODUCT_TAG, record))

    pretty_xml = doc.toprettyxml(indent='  ', encoding='UTF-8')
    return pretty_xml.decode('utf-8')
