# Models package
from .user import User, UserRole
from .catalog import AgeGroup, Category
from .book import Book, BookPage, BookStatus, BookVisibility, book_categories
from .child import Child, ChildPolicy
from .reading_session import ReadingSession, ReadingProgressEvent
