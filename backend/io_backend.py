""" Input/output backend: scans the input folder, writes generated textures and files them into the result folder. """
#  Keeps the main legacy2pbr logic free of filesystem details.

import os

import shutil
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from backend.errors import FilesystemError, ImageSaveError
from backend.image_lib import (ImageObject, save_image as save_image_file)
from backend.texture_classes import OutputFormat, RoleFiles

from settings import (ALLOWED_FILE_TYPES, FILE_TYPE_ALIASES, ROLE_MARKERS, SHOW_DETAILS, SUPPORTED_FORMATS)
from utils import (detect_role, log, make_output_dirs)


@dataclass
class L2PContext:
    work_directory: str = "" # Absolute path of the scanned input folder.
    target_folder_name: str = "" # Result folder name, created next to the work directory; empty keeps results in place.
    output_formats: List[OutputFormat] = field(default_factory=list) # Validated file types written for every output.
    continue_on_save_error: bool = True # Keeps writing remaining file types when one fails.




#                                     === Legacy2PBR core interface ===




def context_validate_output_formats(file_types: List[str], context: Optional[L2PContext] = None) -> List[OutputFormat]:
# Validates the file types set in config and stores them in context as extension + Pillow format pairs.
# Aborts on unknown or missing types.

    output_formats: List[OutputFormat] = []
    seen_extensions: set[str] = set()
    for file_type in file_types:
        typed_extension: str = (file_type or "").strip().lower().lstrip(".")
        file_extension: str = FILE_TYPE_ALIASES.get(typed_extension, typed_extension)

        if file_extension not in ALLOWED_FILE_TYPES:
            sorted_allowed_file_types = ", ".join(sorted(ALLOWED_FILE_TYPES))
            log(f"Aborted: Invalid FILE_TYPES entry '{file_type}'. Supported: {sorted_allowed_file_types}", "error")
            raise SystemExit(1)

        if file_extension in seen_extensions:
            continue
        seen_extensions.add(file_extension)
        output_formats.append(OutputFormat(extension=file_extension, format=SUPPORTED_FORMATS[f".{file_extension}"]))

    if not output_formats:
        log("Aborted: FILE_TYPES is empty, nothing would be written.", "error")
        raise SystemExit(1)

    if context is not None:
        context.output_formats = output_formats
    return output_formats


def list_role_files(input_folder: str, context: Optional[L2PContext] = None, sort_files: bool = True) -> RoleFiles:
# Lists files of the input folder (not recursive) and groups them by texture role.
# A failing directory listing is reported and yields empty lists.

    role_files: RoleFiles = {role: [] for role in ROLE_MARKERS}
    root_directory = os.path.abspath(input_folder or ".")
    if context is not None:
        context.work_directory = root_directory

    try:
        filenames: List[str] = os.listdir(root_directory)
    except OSError as error:
        log(f"Filesystem error while scanning '{root_directory}': {error}", "error")
        filenames = []

    if sort_files:
        filenames = sorted(filenames, key=lambda name: (name.lower(), name))
    # Directory listing order depends on the filesystem; sorting keeps the set pairing stable.

    for filename in filenames:
        role = detect_role(filename)
        if role is None:
            continue
        absolute_path = os.path.join(root_directory, filename)
        if os.path.isfile(absolute_path):
            role_files[role].append(absolute_path)

    return role_files


def save_generated_texture(image: ImageObject, output_directory: str, filename: str, context: L2PContext) -> Tuple[List[str], List[ImageSaveError]]:
# Saves the image once per configured file type, e.g., rock_01_NMO.tga, rock_01_NMO.tif, rock_01_NMO.png.
# Returns written paths and the save errors; stops after the first error unless continue_on_save_error is set.

    written_paths: List[str] = []
    save_errors: List[ImageSaveError] = []

    for output_format in context.output_formats:
        output_path = os.path.join(output_directory, f"{filename}.{output_format['extension']}")
        try:
            save_image_file(image, output_path, output_format["format"])
        except (OSError, ValueError, KeyError) as error:
            save_errors.append(ImageSaveError(f"Failed to save image: {error}", output_path))
            log(f"Failed to save image: {output_path} ({error})", "error")
            if not context.continue_on_save_error:
                break
            continue
        written_paths.append(output_path)
        if SHOW_DETAILS:
            log(f"Written: {output_path}", "info")
    return written_paths, save_errors


def move_generated_files(file_paths: List[str], context: L2PContext) -> Tuple[List[str], List[FilesystemError]]:
# Moves generated files into the result folder, replacing files left from previous runs.
# Files that fail to move stay where they are; returns the final paths and the move errors.

    if not context.target_folder_name.strip():
        return list(file_paths), []

    try:
        target_directory = make_output_dirs(context.work_directory, target_folder_name=context.target_folder_name)
    except OSError as error:
        log(f"Filesystem error: cannot create result folder '{context.target_folder_name}': {error}", "error")
        return list(file_paths), [FilesystemError(str(error), context.target_folder_name)]

    final_paths: List[str] = []
    move_errors: List[FilesystemError] = []
    for source_path in file_paths:
        target_path = os.path.join(target_directory, os.path.basename(source_path))
        try:
            if os.path.abspath(source_path) != os.path.abspath(target_path):
                if os.path.isfile(target_path):
                    os.remove(target_path)
                shutil.move(source_path, target_path)
            final_paths.append(target_path)
        except OSError as error:
            log(f"Warning: failed to move '{source_path}' to '{target_directory}': {error}", "warn")
            final_paths.append(source_path)
            move_errors.append(FilesystemError(str(error), source_path))
    return final_paths, move_errors


def describe_role_files(role_files: RoleFiles) -> Dict[str, int]:
# Counts discovered files per role for logs.
    return {role: len(files) for role, files in role_files.items()}
