"""Org whiteboard backend: typed organisation trees and the engine that edits them."""
