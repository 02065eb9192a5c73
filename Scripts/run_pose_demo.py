import argparse
import logging
from dataclasses import replace
from pathlib import Path

import cv2

from pose_kit import PRESETS, draw_poses, load_pipeline, load_pipeline_profile, profile_from_preset
from pose_kit.ingest import FrameSource
from pose_kit.schema import HAND21, get_schema


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a pose model (optionally + hand landmarks) and draw the results.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--model", default="Models/yolo11n-pose.onnx", help="Path to a pose model (.onnx/.pt).")
    parser.add_argument("--hand-model", default=None, help="Hand landmark model, required by the wrist_hand preset.")
    parser.add_argument("--preset", default="basic", choices=sorted(PRESETS), help="Built-in pipeline profile.")
    parser.add_argument("--config", default=None, help="JSON pipeline profile (overrides --preset).")
    parser.add_argument("--conf", type=float, default=None, help="Override the detection confidence threshold.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--loop", action="store_true", help="Loop the video file.")
    parser.add_argument("--show", action="store_true", help="Show a window with the drawn poses.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video).")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        profile = load_pipeline_profile(Path(args.config))
    else:
        profile = profile_from_preset(args.preset)
    if args.conf is not None:
        profile = replace(profile, conf_threshold=float(args.conf))
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(
        args.model,
        profile=profile,
        hand_model_path=args.hand_model,
        backend=args.backend,
        onnx_providers=onnx_providers,
    )
    schema = get_schema(profile.keypoint_schema)

    def render(frame):
        result = pipeline(frame)
        vis = draw_poses(
            frame,
            result.detections,
            schema=schema,
            keypoint_threshold=profile.keypoint_render_threshold,
            draw_boxes=profile.draw_boxes,
            draw_skeleton=profile.draw_skeleton,
        )
        if result.hands:
            vis = draw_poses(vis, result.hands, schema=HAND21, draw_boxes=False, draw_skeleton=True, per_keypoint_colors=True)
        return result, vis

    image_path = args.image or (None if (args.video is not None or args.webcam is not None) else "Media/person.jpg")
    if image_path is not None:
        img = cv2.imread(image_path)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {image_path}")

        result, vis = render(img)
        if args.out:
            if not cv2.imwrite(args.out, vis):
                raise RuntimeError(f"Failed to write output image: {args.out}")
        if args.show:
            cv2.imshow("poses", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

        for det in result.detections:
            print(det.label or "person", f"{det.confidence:.3f}", det.box.as_xyxy())
        print(f"Detections: {len(result.detections)}  Hands: {len(result.hands)}")
        return 0

    writer = None
    processed = 0
    total = 0
    if args.video is not None:
        source = FrameSource(video=args.video, loop=args.loop)
    else:
        source = FrameSource(webcam=0 if args.webcam is None else int(args.webcam))
    try:
        for frame in source:
            result, vis = render(frame)
            total += len(result.detections)

            if args.out and writer is None:
                fps = source.info.fps or 30.0
                h, w = vis.shape[:2]
                writer = cv2.VideoWriter(args.out, cv2.VideoWriter_fourcc(*"mp4v"), fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")
            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("poses", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            processed += 1
            if args.max_frames and processed >= args.max_frames:
                break
    finally:
        source.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    print(f"Frames: {processed}  Detections: {total}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
