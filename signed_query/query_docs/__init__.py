from .models import RequestDocument, ResultDocument, Rowset
from .translator import build_request, parse_request
from .encoder import encode_rowset, decode_result, format_rows, stringify_value
from .xml_import import load_request_xml, load_request_xml_file
