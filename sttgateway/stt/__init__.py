from .base import SpeechRecognizer, StreamingSpeechRecognizer
