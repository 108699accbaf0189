"""
SpeedRead Custom Exception Classes
"""
from fastapi import status

class SpeedReadException(Exception):
    """Base exception for SpeedRead application"""

    def __init__(
        self,
        detail: str = "An error occurred",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.detail)

class BookNotFoundException(SpeedReadException):
    """Exception raised when a requested book is not found"""

    def __init__(self, book_id: str):
        super().__init__(
            detail=f"Book with ID {book_id} not found",
            status_code=status.HTTP_404_NOT_FOUND
        )

class ChapterNotFoundException(SpeedReadException):
    """Exception raised when a requested chapter is not found"""

    def __init__(self, book_id: str, chapter_index: int):
        super().__init__(
            detail=f"Chapter {chapter_index} of book {book_id} not found",
            status_code=status.HTTP_404_NOT_FOUND
        )

class BookParsingException(SpeedReadException):
    """Exception raised when text extraction fails"""

    def __init__(self, detail: str = "Could not extract text from file"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST
        )

class HeadingOracleException(SpeedReadException):
    """Exception raised when the Ollama heading oracle fails"""

    def __init__(self, detail: str = "Heading oracle unavailable"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )

class DatabaseException(SpeedReadException):
    """Exception raised when database operations fail"""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

class FileStorageException(SpeedReadException):
    """Exception raised when file storage operations fail"""

    def __init__(self, detail: str = "File storage operation failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
