"""
Interactive terminal UI for hours.

The UI follows a model/update/view split: state.py holds the model,
update.py reduces messages into state changes and commands, and view.py
renders the model.
"""
