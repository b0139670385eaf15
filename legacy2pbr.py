""" Converts legacy texture sets (_nohq, _smdi, _as, _co) into channel-packed PBR textures (_NMO, _BCR). """

import os
import sys
import time
from typing import Dict, List, Optional, Tuple

from backend.errors import ImageLoadError, MissingRoleSetError, UnsupportedFormatError

from backend.image_lib import (ImageObject, CHANNEL_ORDER, DECODE_ERRORS, average_channels, convert_to_rgba, get_size,
                               merge_channels_bgra, open_image, resize)

from backend.texture_classes import (ChannelLayout, NormalizedImage, RoleFiles, SetResult, TextureSet, TextureSetSources)

from backend.io_backend import (L2PContext, context_validate_output_formats, describe_role_files, list_role_files,
                                move_generated_files, save_generated_texture)

from settings import (CHANNEL_LAYOUT, CHANNEL_LAYOUTS, CONTINUE_ON_SAVE_ERROR, FILE_TYPES, INPUT_FOLDER, ON_LOAD_ERROR,
                      ON_LOAD_ERROR_POLICIES, OUTPUT_SUFFIXES, REFERENCE_ROLE, ROLE_MARKERS, SHOW_DETAILS, SORT_FILES, TARGET_FOLDER_NAME)

from utils import (CodecSession, codec_session, derive_base_name, log, lookup_format, validate_safe_folder_name)




# Basic data flow for a single texture set:
# TextureSetSources(
#     index=0,
#     base_name="rock_01",
#     paths={"nohq": ".../rock_01_nohq.tga", "smdi": ".../rock_01_smdi.tga", "as": ".../rock_01_as.tga", "co": ".../rock_01_co.tga"})
# > TextureSet(base_name="rock_01", images={"nohq": NormalizedImage(RGBA 1024x1024), ...}, resampled={"as": (512, 512)})
# > (NMO, BCR) NormalizedImages > rock_01_NMO.tga/.tif/.png, rock_01_BCR.tga/.tif/.png in the result folder.


LOAD_ERROR_KINDS: Tuple[str, ...] = (ImageLoadError.__name__, UnsupportedFormatError.__name__)


#                                           === Pipeline ===


def legacy2pbr(
    input_folder: Optional[str] = None,
    *,
    target_folder_name: str = TARGET_FOLDER_NAME,
    file_types: Optional[List[str]] = None,
    channel_layout: str = CHANNEL_LAYOUT,
    on_load_error: str = ON_LOAD_ERROR,
    continue_on_save_error: bool = CONTINUE_ON_SAVE_ERROR,
    sort_files: bool = SORT_FILES,
) -> int:
# Converts every texture set found in the input folder; returns the process exit code.
# Keyword arguments default to the config values.

    start_time = time.time()
    context = L2PContext(target_folder_name=target_folder_name or "", continue_on_save_error=continue_on_save_error)


# Validating config:
    layout: ChannelLayout = _validate_config(
        file_types if file_types is not None else FILE_TYPES,
        channel_layout,
        on_load_error,
        target_folder_name,
        context,
    )
    abort_on_load_error: bool = on_load_error.strip().lower() == "abort"


# Collecting texture sets:
    role_files: RoleFiles = list_role_files(input_folder or INPUT_FOLDER, context, sort_files=sort_files)
    if SHOW_DETAILS:
        counts = ", ".join(f"{role}: {count}" for role, count in describe_role_files(role_files).items())
        log(f"Found files in '{context.work_directory}' ({counts})", "info")

    try:
        texture_sets: List[TextureSetSources] = resolve_texture_sets(role_files)
    except MissingRoleSetError as error:
        log(f"Aborted: {error} in '{context.work_directory}'.", "error")
        return 1
    # Nothing is processed when any role is missing.


# Converting texture sets one by one:
    results: List[SetResult] = []
    for sources in texture_sets:
        log(f"\nProcessing: {sources.base_name}", "info")
        result = process_texture_set(sources, layout, context)
        results.append(result)

        if abort_on_load_error and result.status == "failed" and result.error_kind in LOAD_ERROR_KINDS:
            log("Aborted: failed to load one or more images, remaining texture sets were not processed.", "error")
            break


    _summarize_results(results, len(texture_sets), context)

    if SHOW_DETAILS:
        elapsed_time = time.time() - start_time
        log(f"Execution time: {elapsed_time:.2f} seconds", "info")
        # Prints info.

    all_created = len(results) == len(texture_sets) and all(result.status == "created" for result in results)
    return 0 if all_created else 1


def process_texture_set(sources: TextureSetSources, layout: ChannelLayout, context: L2PContext) -> SetResult:
# Loads, composites and writes a single texture set. Errors are returned in the result instead of raised,
# so the caller decides whether the batch continues.
# All images belonging to the set are released when the session ends.

    result = SetResult(base_name=sources.base_name)

    with codec_session() as session:
        try:
            texture_set: TextureSet = load_texture_set(sources, session)
        except (UnsupportedFormatError, ImageLoadError) as error:
            log(f"{error}: {error.path}", "error")
            log(f"Skipped: '{sources.base_name}'", "skip")
            result.status = "failed"
            result.error_kind = type(error).__name__
            result.errors.append(error)
            return result

        _print_resample_warnings(texture_set)

        generated_images: Tuple[NormalizedImage, ...] = composite_texture_set(texture_set, layout, session)


# Saving the files:
        written_paths: List[str] = []
        for output_suffix, generated_image in zip(OUTPUT_SUFFIXES, generated_images):
            paths, save_errors = save_generated_texture(
                generated_image.image,
                context.work_directory,
                f"{sources.base_name}_{output_suffix}",
                context,
            )
            written_paths.extend(paths)
            result.errors.extend(save_errors)

    result.written_paths, result.warnings = move_generated_files(written_paths, context)
    # Files that could not be moved are still valid outputs.

    if not result.errors:
        result.status = "created"
    elif result.written_paths:
        result.status = "partial"
        result.error_kind = type(result.errors[0]).__name__
    else:
        result.status = "failed"
        result.error_kind = type(result.errors[0]).__name__

    _log_set_result(result, texture_set.size)
    return result




#                                       === Validation & Setup ===

def _validate_config(file_types: List[str], channel_layout: str, on_load_error: str, target_folder_name: str, context: Optional[L2PContext] = None) -> ChannelLayout:
# Runs initial validation for the config and returns the selected channel layout.

    validate_safe_folder_name(target_folder_name)
    # Checks if the folder name doesn't contain unsupported characters.

    context_validate_output_formats(file_types, context)
    # Validates and stores chosen output file types.

    if (on_load_error or "").strip().lower() not in ON_LOAD_ERROR_POLICIES:
        log(f"Aborted: Unknown ON_LOAD_ERROR '{on_load_error}'. Supported: {', '.join(ON_LOAD_ERROR_POLICIES)}", "error")
        raise SystemExit(1)

    layout_name: str = (channel_layout or "").strip().lower()
    layout: Optional[ChannelLayout] = CHANNEL_LAYOUTS.get(layout_name)
    if layout is None:
        log(f"Aborted: Unknown CHANNEL_LAYOUT '{channel_layout}'. Supported: {', '.join(sorted(CHANNEL_LAYOUTS))}", "error")
        raise SystemExit(1)

    try:
        validate_channel_layout(layout)
    except ValueError as error:
        log(f"Aborted: CHANNEL_LAYOUT '{layout_name}' is invalid: {error}", "error")
        raise SystemExit(1)
    return layout


def validate_channel_layout(layout: ChannelLayout) -> None:
# Checks that every output channel is assigned exactly once and only references known roles and channels.

    expected_slots = {(output, slot) for output in OUTPUT_SUFFIXES for slot in range(len(CHANNEL_ORDER))}
    assigned_slots = [(channel_slot.output, channel_slot.slot) for channel_slot in layout]

    if len(assigned_slots) != len(set(assigned_slots)):
        raise ValueError("an output channel is assigned more than once")
    if set(assigned_slots) != expected_slots:
        missing = sorted(expected_slots - set(assigned_slots))
        unknown = sorted(set(assigned_slots) - expected_slots)
        raise ValueError(f"missing channels {missing}, unknown channels {unknown}")

    for channel_slot in layout:
        if channel_slot.transform == "direct":
            expected_sources = 1
        elif channel_slot.transform == "average":
            expected_sources = 2
        else:
            raise ValueError(f"{channel_slot.output}[{channel_slot.slot}] has unknown transform '{channel_slot.transform}'")

        if len(channel_slot.sources) != expected_sources:
            raise ValueError(f"{channel_slot.output}[{channel_slot.slot}] '{channel_slot.transform}' needs {expected_sources} source(s)")

        for source in channel_slot.sources:
            if source.role not in ROLE_MARKERS:
                raise ValueError(f"{channel_slot.output}[{channel_slot.slot}] references unknown role '{source.role}'")
            if not 0 <= source.channel < len(CHANNEL_ORDER):
                raise ValueError(f"{channel_slot.output}[{channel_slot.slot}] references channel {source.channel}")




#                                         === Texture Set Resolution ===

def resolve_texture_sets(role_files: RoleFiles) -> List[TextureSetSources]:
# Pairs role files by position: set i uses nohq[i] and wraps around the shorter lists,
# e.g., 3 nohq files with a single smdi file reuse that smdi for all 3 sets.

    missing_roles: List[str] = [role for role in ROLE_MARKERS if not role_files.get(role)]
    if missing_roles:
        raise MissingRoleSetError(missing_roles)

    texture_sets: List[TextureSetSources] = []
    for index, reference_path in enumerate(role_files[REFERENCE_ROLE]):
        paths: Dict[str, str] = {role: role_files[role][index % len(role_files[role])] for role in ROLE_MARKERS}
        texture_sets.append(TextureSetSources(index=index, base_name=derive_base_name(reference_path), paths=paths))
    return texture_sets




#                                          === Normalization ===

def normalize_image(image: ImageObject, target_size: Optional[Tuple[int, int]] = None) -> NormalizedImage:
# Converts a decoded image to 8bit RGBA and rescales it to the target size if it differs.
    normalized = convert_to_rgba(image)
    if target_size is not None and get_size(normalized) != tuple(target_size):
        normalized = resize(normalized, tuple(target_size))
    return NormalizedImage(normalized)


def load_normalized_image(path: str, target_size: Optional[Tuple[int, int]] = None, session: Optional[CodecSession] = None) -> NormalizedImage:
# Opens a source file and normalizes it.
# Raises UnsupportedFormatError for unknown extensions and ImageLoadError when the file cannot be decoded.

    format_name: str = lookup_format(path)
    try:
        image = open_image(path, formats=[format_name])
    except DECODE_ERRORS as error:
        raise ImageLoadError(f"Failed to load image ({error})", path) from error

    if session is not None:
        session.track(image)
    normalized = normalize_image(image, target_size)
    if session is not None:
        session.track(normalized.image)
    return normalized


def load_texture_set(sources: TextureSetSources, session: Optional[CodecSession] = None) -> TextureSet:
# Loads all four maps of a set; every map is scaled to the resolution of the nohq map.

    texture_set = TextureSet(base_name=sources.base_name)
    reference_size: Optional[Tuple[int, int]] = None
    roles: List[str] = [REFERENCE_ROLE] + [role for role in ROLE_MARKERS if role != REFERENCE_ROLE]

    for role in roles:
        path = sources.paths[role]
        normalized = load_normalized_image(path, None, session)

        if reference_size is None:
            reference_size = normalized.size
        elif normalized.size != reference_size:
            texture_set.resampled[role] = normalized.size
            resized = normalize_image(normalized.image, reference_size)
            if session is not None:
                session.track(resized.image)
            normalized = resized
        # Only maps that differ from the nohq size are rescaled; the nohq map itself is never touched.

        texture_set.images[role] = normalized
    return texture_set




#                                        === Channel Compositing ===

def extract_channel(image: NormalizedImage, index: int) -> ImageObject:
# Returns the plane of a single channel (0=B, 1=G, 2=R, 3=A).
    return image.channel(index)


def composite_texture_set(texture_set: TextureSet, layout: ChannelLayout, session: Optional[CodecSession] = None) -> Tuple[NormalizedImage, ...]:
# Builds the output images (NMO, BCR) by copying or averaging source channels as listed in the layout.
# Expects all images of the set to share one resolution.

    sizes = {image.size for image in texture_set.images.values()}
    if len(sizes) != 1:
        raise ValueError(f"Texture set '{texture_set.base_name}' has mixed resolutions: {sorted(sizes)}")

    def track(image: ImageObject) -> ImageObject:
        return session.track(image) if session is not None else image

    planes_by_output: Dict[str, List[Optional[ImageObject]]] = {output: [None] * len(CHANNEL_ORDER) for output in OUTPUT_SUFFIXES}

    for channel_slot in layout:
        source_planes: List[ImageObject] = [
            track(extract_channel(texture_set.images[source.role], source.channel)) for source in channel_slot.sources
        ]
        if channel_slot.transform == "average":
            plane = track(average_channels(source_planes[0], source_planes[1]))
        else:
            plane = source_planes[0]
        planes_by_output[channel_slot.output][channel_slot.slot] = plane

    return tuple(
        NormalizedImage(track(merge_channels_bgra(planes_by_output[output]))) for output in OUTPUT_SUFFIXES
    )




#                                        === Reporting / Summary ===

def _print_resample_warnings(texture_set: TextureSet) -> None:
# Warns once per set about rescaled maps; lists each map when SHOW_DETAILS is set.

    if not texture_set.resampled:
        return
    log("Texture set resolution mismatch." if not SHOW_DETAILS else "Texture set resolution mismatch:", "warn")
    if SHOW_DETAILS:
        target_width, target_height = texture_set.size
        for role, (width, height) in texture_set.resampled.items():
            log(f"Rescaling {role} ({width}x{height}) to {target_width}x{target_height}", "info")


def _log_set_result(result: SetResult, resolution: Tuple[int, int]) -> None:
# Prints the created files of a set, or why nothing was created.

    names = sorted({os.path.basename(path) for path in result.written_paths})
    if result.status == "created":
        if SHOW_DETAILS:
            width, height = resolution
            log(f"Created: {', '.join(names)} ({width}x{height})", "complete")
        else:
            log(f"Created: {', '.join(names)}", "complete")
    elif result.status == "partial":
        log(f"Partially created: {', '.join(names)} ({len(result.errors)} file(s) failed)", "warn")
    else:
        log(f"Skipped: '{result.base_name}' - no output could be saved", "skip")


def _summarize_results(results: List[SetResult], texture_set_count: int, context: L2PContext) -> None:
# Prints the final summary for the whole batch.

    log("", "info")  # Visual separator

    created = [result for result in results if result.status == "created"]
    failed = [result for result in results if result.status != "created"]
    not_processed = texture_set_count - len(results)

    for result in failed:
        log(f"Info: '{result.base_name}' {result.status} ({result.error_kind})", "info")
    if not_processed:
        log(f"Info: {not_processed} texture set(s) not processed.", "info")

    if not failed and not not_processed:
        log(f"All processing done. Converted {len(created)} texture set(s).", "complete")
    else:
        log(f"Processing finished with errors: {len(created)} of {texture_set_count} texture set(s) converted.", "warn")

    if context.target_folder_name.strip() and any(result.written_paths for result in results):
        absolute_target_directory = os.path.join(os.path.dirname(context.work_directory), context.target_folder_name.strip())
        log(f"PBR maps saved to: {absolute_target_directory}", "info")




#                                         === CLI entry point ===

def main() -> None:
    cli_arg = " ".join(sys.argv[1:]).strip() or None
    # Allows a CLI path to override INPUT_FOLDER.
    input_folder = (cli_arg or INPUT_FOLDER or "").strip()
    if not input_folder or not os.path.isdir(input_folder):
        log(f"Aborted: No valid input folder provided (CLI/config): '{input_folder}'", "error")
        # Prints error.
        sys.exit(1)

    sys.exit(legacy2pbr(input_folder))

if __name__ == "__main__":
    main()
