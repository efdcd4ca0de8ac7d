"""
Utility for calculating and comparing file checksums.
"""
import concurrent.futures
import hashlib
from typing import Dict, Hashable, List, Tuple, Union

from ..config import CHECKSUM_ALGORITHM, HASH_BUFFER_SIZE, MAX_THREADS
from ..paths import to_external_form


def calculate_checksum(
    file_path: str,
    algorithm: str = CHECKSUM_ALGORITHM,
    buffer_size: int = HASH_BUFFER_SIZE,
) -> str:
    """
    Calculate checksum for a file.
    
    Args:
        file_path: Path to the file (any addressing form)
        algorithm: Hash algorithm to use ("md5", "sha1" or "sha256")
        buffer_size: Size of chunks to read
        
    Returns:
        Upper-case hexadecimal string of the calculated hash
    """
    hash_func = hashlib.new(algorithm)
    
    with open(to_external_form(file_path), "rb") as f:
        while True:
            data = f.read(buffer_size)
            if not data:
                break
            hash_func.update(data)
            
    return hash_func.hexdigest().upper()


def files_differ(source_path: str, dest_path: str, algorithm: str = CHECKSUM_ALGORITHM) -> bool:
    """True when the two files have different checksums."""
    return calculate_checksum(source_path, algorithm) != calculate_checksum(dest_path, algorithm)


def batch_compare_checksums(
    pairs: List[Tuple[Hashable, str, str]],
    algorithm: str = CHECKSUM_ALGORITHM,
    max_workers: int = MAX_THREADS,
) -> Dict[Hashable, Union[bool, OSError]]:
    """
    Compare many (key, source_path, dest_path) pairs in parallel using a thread pool.
    
    Args:
        pairs: Files to compare, each tagged with a caller-chosen key
        algorithm: Hash algorithm to use
        max_workers: Size of the thread pool
        
    Returns:
        Dictionary mapping each key to True (differs), False (identical) or
        the OSError raised while reading one of the files
    """
    results = {}
    
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_key = {
            executor.submit(files_differ, source_path, dest_path, algorithm): key
            for key, source_path, dest_path in pairs
        }
        
        for future in concurrent.futures.as_completed(future_to_key):
            key = future_to_key[future]
            try:
                results[key] = future.result()
            except OSError as e:
                # Reported by the caller, other files keep going
                results[key] = e
                
    return results
