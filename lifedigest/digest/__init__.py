"""
Digest assembly and delivery.

    lifedigest/digest/
    ├── renderer.py   - ExecutionReport -> subject/HTML/text
    ├── delivery.py   - SMTP delivery
    └── runner.py     - fetch -> execute -> render -> send, plus the CLI
"""
